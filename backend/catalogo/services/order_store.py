"""Order store: order headers plus a line set keyed by product ref.

Two write paths exist for lines. ``replace_items`` is the full cart sync
(last write wins, never a merge); ``add_or_update_item`` adds a quantity delta to
one line. Lines never persist with a quantity of zero.
"""
from __future__ import annotations
import logging
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Mapping, Optional

from sqlalchemy import select, delete
from sqlalchemy.exc import SQLAlchemyError

from catalogo import get_db
from catalogo.errors import InvalidReference, NotFound, NoFieldsProvided, ValidationError
from catalogo.models.catalog import Catalog
from catalogo.models.order import Order, OrderLine
from catalogo.utils.validation import clean_str, to_int, to_price

log = logging.getLogger(__name__)

MAX_ID_LENGTH = 64


def _now():
    return datetime.now(timezone.utc)


def order_json(o: Order) -> Dict[str, Any]:
    return {
        'id': o.id,
        'catalogo_id': o.catalogo_id,
        'cliente_nome': o.cliente_nome,
        'cliente_contato': o.cliente_contato,
        'observacao': o.observacao,
        'status': o.status,
        'created_at': o.created_at.isoformat() if o.created_at else None,
        'updated_at': o.updated_at.isoformat() if o.updated_at else None,
    }


def line_json(line: OrderLine) -> Dict[str, Any]:
    return {
        'ref': line.ref,
        'nome': line.nome,
        'pagina': line.pagina,
        'qtd': line.qtd,
        'qtd_multiplo': line.qtd_multiplo,
        'preco': float(line.preco),
    }


def normalize_line(raw: Mapping[str, Any]) -> Optional[Dict[str, Any]]:
    """Cleaned line values, or None when the line must not be stored."""
    if not isinstance(raw, Mapping):
        return None
    ref = clean_str(raw.get('ref'))
    qtd = max(0, to_int(raw.get('qtd'), 0) or 0)
    if not ref or qtd <= 0:
        return None
    return {
        'ref': ref,
        'nome': clean_str(raw.get('nome')) or '',
        'pagina': to_int(raw.get('pagina'), None),
        'qtd': qtd,
        'qtd_multiplo': max(1, to_int(raw.get('qtd_multiplo'), 1) or 1),
        'preco': to_price(raw.get('preco')),
    }


def _load_order(session, order_id: str) -> Order:
    o = session.execute(select(Order).where(Order.id == str(order_id))).scalar_one_or_none()
    if not o:
        raise NotFound('Pedido não encontrado')
    return o


def _order_lines(session, order_id: str) -> List[OrderLine]:
    stmt = (
        select(OrderLine)
        .where(OrderLine.pedido_id == order_id)
        .order_by(OrderLine.nome.asc(), OrderLine.ref.asc())
    )
    return list(session.execute(stmt).scalars())


def create_order(catalogo_id: Any, meta: Optional[Mapping[str, Any]] = None, session=None) -> Order:
    """Create an order for an existing catalog.

    A client-supplied ``id`` makes the call idempotent: an existing order with
    that id is returned as is, header fields in ``meta`` are ignored.
    """
    session = session or get_db()
    meta = meta or {}
    cat_id = to_int(catalogo_id, None)
    if not cat_id:
        raise ValidationError('catalogo_id é obrigatório')
    if session.get(Catalog, cat_id) is None:
        raise InvalidReference('catalogo_id não existe')
    order_id = clean_str(meta.get('id'))
    if order_id:
        if len(order_id) > MAX_ID_LENGTH:
            raise ValidationError('id inválido')
        existing = session.get(Order, order_id)
        if existing is not None:
            return existing
    o = Order(
        id=order_id or str(uuid.uuid4()),
        catalogo_id=cat_id,
        cliente_nome=clean_str(meta.get('cliente_nome')),
        cliente_contato=clean_str(meta.get('cliente_contato')),
        observacao=clean_str(meta.get('observacao')),
        status=clean_str(meta.get('status')) or Order.STATUS_OPEN,
    )
    session.add(o)
    session.commit()
    log.info('Order %s created for catalog %s', o.id, cat_id)
    return o


def get_order(order_id: str, session=None) -> Dict[str, Any]:
    session = session or get_db()
    o = _load_order(session, order_id)
    body = order_json(o)
    body['itens'] = [line_json(l) for l in _order_lines(session, o.id)]
    return body


def patch_order(order_id: str, fields: Mapping[str, Any], session=None) -> Order:
    session = session or get_db()
    changes = {}
    for name in Order.MUTABLE_FIELDS:
        if name in fields:
            changes[name] = clean_str(fields[name])
    if 'status' in changes:
        changes['status'] = changes['status'] or Order.STATUS_OPEN
    if not changes:
        raise NoFieldsProvided()
    o = _load_order(session, order_id)
    for name, value in changes.items():
        setattr(o, name, value)
    o.updated_at = _now()
    session.commit()
    return o


def replace_items(order_id: str, items: Iterable[Mapping[str, Any]], session=None) -> Dict[str, bool]:
    """Overwrite every line of an order with ``items`` in one transaction."""
    session = session or get_db()
    if not isinstance(items, (list, tuple)):
        raise ValidationError('itens (array) é obrigatório')
    o = _load_order(session, order_id)
    lines: Dict[str, Dict[str, Any]] = {}
    for raw in items:
        line = normalize_line(raw)
        if line is not None:
            lines[line['ref']] = line
    try:
        session.execute(delete(OrderLine).where(OrderLine.pedido_id == o.id))
        for line in lines.values():
            session.add(OrderLine(pedido_id=o.id, **line))
        o.updated_at = _now()
        session.commit()
    except SQLAlchemyError:
        session.rollback()
        log.exception('Replacing items of order %s failed', o.id)
        raise
    return {'ok': True}


def add_or_update_item(order_id: str, ref: Any, delta: Any = 1, meta: Optional[Mapping[str, Any]] = None, session=None) -> Dict[str, Any]:
    """Add ``delta`` to the line's quantity, creating the line when missing.

    Snapshot fields (nome, pagina, qtd_multiplo, preco) are re-stamped from
    ``meta``. A missing or zero delta counts as 1. A resulting quantity of
    zero removes the line.
    """
    session = session or get_db()
    meta = meta or {}
    ref = clean_str(ref)
    if not ref:
        raise ValidationError('ref é obrigatório')
    o = _load_order(session, order_id)
    step = to_int(delta, 1) or 1
    line = session.execute(
        select(OrderLine).where(OrderLine.pedido_id == o.id, OrderLine.ref == ref)
    ).scalar_one_or_none()
    qtd = max(0, (line.qtd if line else 0) + step)
    snapshot = {
        'nome': clean_str(meta.get('nome')) or '',
        'pagina': to_int(meta.get('pagina'), None),
        'qtd_multiplo': max(1, to_int(meta.get('qtd_multiplo'), 1) or 1),
        'preco': to_price(meta.get('preco')),
    }
    if line is None:
        line = OrderLine(pedido_id=o.id, ref=ref, qtd=qtd, **snapshot)
        if qtd > 0:
            session.add(line)
    else:
        line.qtd = qtd
        for name, value in snapshot.items():
            setattr(line, name, value)
        if qtd <= 0:
            session.delete(line)
    o.updated_at = _now()
    session.commit()
    return line_json(line)


def remove_item(order_id: str, ref: Any, session=None) -> Dict[str, bool]:
    """Delete one line; absent lines or orders are not an error."""
    session = session or get_db()
    ref = clean_str(ref)
    if not ref:
        raise ValidationError('ref é obrigatório')
    session.execute(delete(OrderLine).where(OrderLine.pedido_id == str(order_id), OrderLine.ref == ref))
    o = session.get(Order, str(order_id))
    if o is not None:
        o.updated_at = _now()
    session.commit()
    return {'ok': True}


__all__ = [
    'order_json', 'line_json', 'normalize_line', 'create_order', 'get_order',
    'patch_order', 'replace_items', 'add_or_update_item', 'remove_item',
]
