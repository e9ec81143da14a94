"""Buyer-side cart for one catalog.

Edits apply to the local cart first, are persisted to ``storage`` right away
and are then pushed to the order store by a detached full-replace sync. The
local cart is what the buyer sees; sync failures are logged and dropped, and the
next edit sends the whole cart again.
"""
from __future__ import annotations
import json
import logging
import threading
from decimal import Decimal
from typing import Any, Dict, List, Mapping, Optional

from catalogo.cart.checkout import cart_total, line_subtotal, make_order_text, make_whatsapp_link
from catalogo.cart.ports import CartStorage, OrderStoreClient
from catalogo.cart.runner import BackgroundRunner
from catalogo.errors import DomainError, TransientSyncError, ValidationError
from catalogo.services.quantity import normalize_multiple, round_to_multiple, to_number
from catalogo.utils.validation import clean_str, to_int, to_price

log = logging.getLogger(__name__)

CART_KEY = 'catalogo_cart_{}'
ORDER_KEY = 'catalogo_pedido_{}'
STATE_EMPTY = 'Empty'
STATE_ACTIVE = 'Active'
MISSING_ORDER_ID = '(sem-id)'
ORDER_META = {'cliente_nome': None, 'cliente_contato': 'WhatsApp', 'observacao': 'B2B'}


def _entry(raw: Mapping[str, Any]) -> Optional[Dict[str, Any]]:
    if not isinstance(raw, Mapping):
        return None
    ref = clean_str(raw.get('ref'))
    if not ref:
        return None
    return {
        'ref': ref,
        'nome': clean_str(raw.get('nome')) or '',
        'pagina': to_int(raw.get('pagina'), None),
        'qtd': max(0, to_int(raw.get('qtd'), 0) or 0),
        'qtd_multiplo': normalize_multiple(raw.get('qtd_multiplo')),
        'preco': float(to_price(raw.get('preco'))),
    }


class CartController:
    def __init__(self, catalogo_id: Any, storage: CartStorage, client: OrderStoreClient, runner=None):
        self.catalogo_id = catalogo_id
        self.storage = storage
        self.client = client
        self.runner = runner or BackgroundRunner()
        self.order_id: Optional[str] = None
        self._items: List[Dict[str, Any]] = []
        self._lock = threading.RLock()
        self._create_lock = threading.Lock()
        self._restore()

    # --- persistence -------------------------------------------------------
    @property
    def cart_key(self) -> str:
        return CART_KEY.format(self.catalogo_id)

    @property
    def order_key(self) -> str:
        return ORDER_KEY.format(self.catalogo_id)

    def _load(self, key: str) -> Any:
        raw = self.storage.get(key)
        if not raw:
            return None
        try:
            return json.loads(raw)
        except ValueError:
            log.warning('Ignoring corrupt cart storage value under %s', key)
            return None

    def _restore(self) -> None:
        saved = self._load(self.cart_key)
        if isinstance(saved, dict) and isinstance(saved.get('cart'), list):
            for raw in saved['cart']:
                entry = _entry(raw)
                if entry is not None:
                    self._items.append(entry)
        saved_order = self._load(self.order_key)
        if isinstance(saved_order, dict):
            self.order_id = clean_str(saved_order.get('pedidoId'))

    def _persist(self) -> None:
        self.storage.set(self.cart_key, json.dumps({'cart': self._items}, ensure_ascii=False))
        if self.order_id:
            self.storage.set(self.order_key, json.dumps({'pedidoId': self.order_id}))

    # --- read side ---------------------------------------------------------
    @property
    def state(self) -> str:
        with self._lock:
            return STATE_ACTIVE if (self._items or self.order_id) else STATE_EMPTY

    @property
    def items(self) -> List[Dict[str, Any]]:
        with self._lock:
            return [dict(i) for i in self._items]

    def get_item(self, ref: Any) -> Optional[Dict[str, Any]]:
        ref = clean_str(ref)
        with self._lock:
            for item in self._items:
                if item['ref'] == ref:
                    return dict(item)
        return None

    def subtotal(self, ref: Any) -> Decimal:
        item = self.get_item(ref)
        return line_subtotal(item) if item else Decimal('0.00')

    @property
    def total(self) -> Decimal:
        return cart_total(self.items)

    # --- local edits -------------------------------------------------------
    def add_to_cart(self, product: Mapping[str, Any], forced_qty: Any = None) -> Dict[str, Any]:
        """Add one case pack of ``product`` (or ``forced_qty`` units) and sync.

        The entry's price and multiple are re-stamped from ``product``.
        """
        ref = clean_str(product.get('ref'))
        if not ref:
            raise ValidationError('ref é obrigatório')
        m = normalize_multiple(product.get('qtd_multiplo'))
        add_qty = m if forced_qty is None else to_number(forced_qty)
        with self._lock:
            current = next((i for i in self._items if i['ref'] == ref), None)
            if current is not None:
                current['qtd'] = round_to_multiple(current['qtd'] + add_qty, m)
                current['qtd_multiplo'] = m
                current['preco'] = float(to_price(product.get('preco')))
            else:
                current = _entry(product)
                current['qtd_multiplo'] = m
                current['qtd'] = round_to_multiple(add_qty, m)
                self._items.append(current)
            self._persist()
            added = dict(current)
        log.debug('Cart %s: +%s of %s', self.catalogo_id, add_qty, ref)
        self._schedule_sync()
        return added

    def remove_from_cart(self, ref: Any) -> None:
        ref = clean_str(ref)
        with self._lock:
            self._items = [i for i in self._items if i['ref'] != ref]
            self._persist()
        self._schedule_sync()

    def set_qty(self, ref: Any, qty: Any) -> Optional[Dict[str, Any]]:
        """Set a line's quantity, rounded to its multiple. Unknown refs are ignored."""
        ref = clean_str(ref)
        with self._lock:
            current = next((i for i in self._items if i['ref'] == ref), None)
            if current is None:
                return None
            current['qtd'] = round_to_multiple(qty, current['qtd_multiplo'])
            self._persist()
            updated = dict(current)
        self._schedule_sync()
        return updated

    def clear_cart(self) -> None:
        with self._lock:
            self._items = []
            self._persist()
        self._schedule_sync()

    # --- order store -------------------------------------------------------
    def ensure_order_id(self) -> str:
        """Id of this cart's order, creating the order on first use.

        The state lock is released while the order store is called, so local
        edits never wait on the network.
        """
        with self._lock:
            if self.order_id:
                return self.order_id
        with self._create_lock:
            with self._lock:
                if self.order_id:
                    return self.order_id
            created = self.client.create_order(self.catalogo_id, dict(ORDER_META))
            new_id = clean_str(created.get('id')) if isinstance(created, Mapping) else None
            if not new_id:
                raise TransientSyncError('Pedido criado sem id')
            with self._lock:
                # a shared order link may have been loaded meanwhile
                if not self.order_id:
                    self.order_id = new_id
                    self._persist()
                    log.info('Cart %s bound to order %s', self.catalogo_id, new_id)
                return self.order_id

    def sync(self) -> None:
        """Push the current cart to the order store, replacing its lines.

        Raises TransientSyncError on any failure.
        """
        try:
            order_id = self.ensure_order_id()
            payload = self.items
            self.client.replace_items(order_id, payload)
        except TransientSyncError:
            raise
        except DomainError as exc:
            raise TransientSyncError(exc.detail) from exc
        except Exception as exc:
            log.error('Unexpected failure syncing cart %s: %r', self.catalogo_id, exc)
            raise TransientSyncError(str(exc) or exc.__class__.__name__) from exc

    def _sync_detached(self) -> None:
        try:
            self.sync()
        except TransientSyncError as exc:
            log.warning('Background sync of cart %s failed: %s', self.catalogo_id, exc.detail)

    def _schedule_sync(self) -> None:
        self.runner.submit(('cart', self.catalogo_id), self._sync_detached)

    def load_order_link(self, order_id: Any) -> bool:
        """Replace the local cart with the items of a shared order.

        Returns False, leaving the cart untouched, when the order cannot be
        fetched or belongs to another catalog.
        """
        order_id = clean_str(order_id)
        if not order_id:
            return False
        try:
            data = self.client.get_order(order_id)
        except DomainError as exc:
            log.info('Order link %s not loaded: %s', order_id, exc.detail)
            return False
        if not isinstance(data, Mapping):
            log.info('Order link %s returned an unexpected body', order_id)
            return False
        if to_int(data.get('catalogo_id'), None) != to_int(self.catalogo_id, None):
            log.info('Order link %s belongs to catalog %s, not %s', order_id, data.get('catalogo_id'), self.catalogo_id)
            return False
        items = []
        for raw in data.get('itens') or []:
            entry = _entry(raw)
            if entry is not None and entry['qtd'] > 0:
                items.append(entry)
        with self._lock:
            self._items = items
            self.order_id = str(data.get('id') or order_id)
            self._persist()
        return True

    def checkout(self, catalog: Optional[Mapping[str, Any]] = None, base_url: str = '') -> str:
        """WhatsApp URL carrying the order text and the ``/p/<id>`` link.

        The order is synced first; when that fails the message is still built
        from the local cart.
        """
        if not self.items:
            raise ValidationError('Carrinho vazio')
        try:
            self.sync()
            order_id = self.order_id
        except TransientSyncError as exc:
            log.warning('Checkout of cart %s without sync: %s', self.catalogo_id, exc.detail)
            order_id = self.order_id or MISSING_ORDER_ID
        catalog = catalog or {}
        link = f"{base_url.rstrip('/')}/p/{order_id}"
        text = make_order_text(catalog, self.items, self.total) + f'\n\n🔗 Link do pedido: {link}'
        return make_whatsapp_link(catalog.get('whatsapp_phone'), text)


__all__ = ['CartController', 'CART_KEY', 'ORDER_KEY', 'STATE_EMPTY', 'STATE_ACTIVE']
