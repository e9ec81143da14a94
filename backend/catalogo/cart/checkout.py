"""Presentation helpers for sending a cart as a WhatsApp order message."""
from __future__ import annotations
import re
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Iterable, Mapping, Optional
from urllib.parse import quote

from catalogo.utils.validation import to_price

WHATSAPP_BASE = 'https://wa.me/'
# same characters encodeURIComponent leaves alone
_URI_SAFE = "!*'()"


def money_br(value: Any) -> str:
    """``1234.5`` -> ``R$ 1.234,50``."""
    amount = to_price(value).quantize(Decimal('0.01'), rounding=ROUND_HALF_UP)
    whole, cents = f'{amount:.2f}'.split('.')
    grouped = f'{int(whole):,}'.replace(',', '.')
    return f'R$ {grouped},{cents}'


def line_subtotal(item: Mapping[str, Any]) -> Decimal:
    return to_price(item.get('preco')) * int(item.get('qtd') or 0)


def cart_total(items: Iterable[Mapping[str, Any]]) -> Decimal:
    return sum((line_subtotal(i) for i in items), Decimal('0.00'))


def make_order_text(catalog: Optional[Mapping[str, Any]], items: Iterable[Mapping[str, Any]], total: Any = None) -> str:
    catalog = catalog or {}
    items = list(items)
    if total is None:
        total = cart_total(items)
    lines = [f"🧾 Pedido B2B - {catalog.get('nome') or 'Catálogo'}"]
    if catalog.get('empresa_nome'):
        lines.append(f"🏷️ Empresa: {catalog['empresa_nome']}")
    if catalog.get('politica'):
        lines.append(f"📌 Política: {catalog['politica']}")
    lines.append('')
    lines.append('Itens:')
    for it in items:
        lines.append(
            f"• {it.get('nome')} | Ref: {it.get('ref')} | Qtd: {it.get('qtd')} | "
            f"{money_br(it.get('preco'))} | Sub: {money_br(line_subtotal(it))}"
        )
    lines.append('')
    lines.append(f'Total: {money_br(total)}')
    return '\n'.join(lines)


def make_whatsapp_link(phone: Any, text: str) -> str:
    digits = re.sub(r'\D', '', str(phone or ''))
    base = f'{WHATSAPP_BASE}{digits}' if digits else WHATSAPP_BASE
    return f'{base}?text={quote(text, safe=_URI_SAFE)}'


__all__ = ['money_br', 'line_subtotal', 'cart_total', 'make_order_text', 'make_whatsapp_link']
