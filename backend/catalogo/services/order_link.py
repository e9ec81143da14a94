from __future__ import annotations
from typing import Any, Dict

from catalogo.services.order_store import get_order


def resolve(order_id: str, session=None) -> Dict[str, Any]:
    """Map a shared order link to the catalog to open and the cart to restore.

    Raises NotFound for unknown ids; callers fall back to an empty cart.
    """
    order = get_order(order_id, session=session)
    return {
        'pedido_id': order['id'],
        'catalogo_id': order['catalogo_id'],
        'itens': order['itens'],
    }


__all__ = ['resolve']
