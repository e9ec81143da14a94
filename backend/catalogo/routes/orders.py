from __future__ import annotations
from flask import Blueprint, request
from catalogo import get_db
from catalogo.models.order import Order
from catalogo.services import order_store
from catalogo.services.order_link import resolve

orders_bp = Blueprint('orders', __name__)


def _body():
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}


@orders_bp.post('/pedidos')
def create_order():
    body = _body()
    existing = None
    if body.get('id'):
        existing = get_db().get(Order, str(body['id']).strip())
    o = order_store.create_order(body.get('catalogo_id'), body)
    # 200 when a client-supplied id already existed, 201 for a new order
    return order_store.order_json(o), (200 if existing is not None else 201)


@orders_bp.get('/pedidos/<order_id>')
def get_order(order_id: str):
    return order_store.get_order(order_id)


@orders_bp.patch('/pedidos/<order_id>')
def patch_order(order_id: str):
    o = order_store.patch_order(order_id, _body())
    return order_store.order_json(o)


@orders_bp.put('/pedidos/<order_id>/itens')
def replace_items(order_id: str):
    return order_store.replace_items(order_id, _body().get('itens'))


@orders_bp.post('/pedidos/<order_id>/itens/add')
def add_item(order_id: str):
    body = _body()
    return order_store.add_or_update_item(order_id, body.get('ref'), body.get('delta', 1), body)


@orders_bp.post('/pedidos/<order_id>/itens/remove')
def remove_item(order_id: str):
    return order_store.remove_item(order_id, _body().get('ref'))


@orders_bp.get('/p/<order_id>')
def order_link(order_id: str):
    return resolve(order_id)
