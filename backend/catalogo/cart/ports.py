"""Collaborators injected into the cart controller.

``CartStorage`` is a string key/value store standing in for browser local
storage. ``OrderStoreClient`` reaches the order store either in-process
(``LocalOrderStoreClient``) or over HTTP (``HttpOrderStoreClient``).

Clients raise ``NotFound``/``ValidationError`` for answers the server gave and
``TransientSyncError`` when the server could not be reached or failed.
"""
from __future__ import annotations
import json
import logging
import os
import threading
from typing import Any, Dict, List, Mapping, Optional

import requests
from sqlalchemy.exc import SQLAlchemyError

from catalogo.errors import DomainError, NotFound, TransientSyncError, ValidationError
from catalogo.services import order_store

log = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 10


class CartStorage:
    def get(self, key: str) -> Optional[str]:
        raise NotImplementedError

    def set(self, key: str, value: str) -> None:
        raise NotImplementedError


class MemoryCartStorage(CartStorage):
    def __init__(self, initial: Optional[Mapping[str, str]] = None):
        self.data: Dict[str, str] = dict(initial or {})

    def get(self, key: str) -> Optional[str]:
        return self.data.get(key)

    def set(self, key: str, value: str) -> None:
        self.data[key] = value


class JsonFileCartStorage(CartStorage):
    """All keys kept in one JSON object on disk, rewritten on every ``set``."""

    def __init__(self, path: str):
        self.path = path
        self._lock = threading.Lock()

    def _read(self) -> Dict[str, str]:
        try:
            with open(self.path, encoding='utf-8') as fh:
                data = json.load(fh)
        except FileNotFoundError:
            return {}
        except ValueError:
            log.warning('Ignoring unreadable cart storage file %s', self.path)
            return {}
        return data if isinstance(data, dict) else {}

    def get(self, key: str) -> Optional[str]:
        with self._lock:
            value = self._read().get(key)
        return value if isinstance(value, str) else None

    def set(self, key: str, value: str) -> None:
        with self._lock:
            data = self._read()
            data[key] = value
            tmp = f'{self.path}.tmp'
            with open(tmp, 'w', encoding='utf-8') as fh:
                json.dump(data, fh, ensure_ascii=False)
            os.replace(tmp, self.path)


class OrderStoreClient:
    def create_order(self, catalogo_id: Any, meta: Mapping[str, Any]) -> Dict[str, Any]:
        raise NotImplementedError

    def replace_items(self, order_id: str, items: List[Dict[str, Any]]) -> None:
        raise NotImplementedError

    def get_order(self, order_id: str) -> Dict[str, Any]:
        raise NotImplementedError


class LocalOrderStoreClient(OrderStoreClient):
    """Calls the order store services directly inside ``app``'s context."""

    def __init__(self, app):
        self.app = app

    def _call(self, fn, *args):
        with self.app.app_context():
            try:
                return fn(*args)
            except SQLAlchemyError as exc:
                log.error('Order store call %s failed: %s', fn.__name__, exc)
                raise TransientSyncError(str(exc)) from exc

    def create_order(self, catalogo_id, meta):
        return self._call(_create_order_json, catalogo_id, meta)

    def replace_items(self, order_id, items):
        self._call(order_store.replace_items, order_id, items)

    def get_order(self, order_id):
        return self._call(order_store.get_order, order_id)


def _create_order_json(catalogo_id, meta):
    return order_store.order_json(order_store.create_order(catalogo_id, meta))


class HttpOrderStoreClient(OrderStoreClient):
    def __init__(self, base_url: str, session: Optional[requests.Session] = None, timeout: float = DEFAULT_TIMEOUT):
        self.base_url = base_url.rstrip('/')
        self.session = session or requests.Session()
        self.timeout = timeout

    def _request(self, method: str, path: str, json_body: Any = None) -> Any:
        url = f'{self.base_url}{path}'
        try:
            response = self.session.request(method, url, json=json_body, timeout=self.timeout)
        except requests.exceptions.RequestException as exc:
            log.error('Order store request %s %s failed: %s', method, url, exc)
            raise TransientSyncError(str(exc)) from exc
        log.debug('Order store request: %s %s - Status: %s', method, url, response.status_code)
        if response.status_code >= 400:
            raise _error_from_response(response)
        try:
            return response.json()
        except ValueError as exc:
            # e.g. an HTML page from a proxy in front of the API
            log.error('Order store request %s %s returned a non-JSON body', method, url)
            raise TransientSyncError('Resposta inválida do servidor') from exc

    def create_order(self, catalogo_id, meta):
        body = dict(meta)
        body['catalogo_id'] = catalogo_id
        return self._request('POST', '/pedidos', body)

    def replace_items(self, order_id, items):
        self._request('PUT', f'/pedidos/{order_id}/itens', {'itens': items})

    def get_order(self, order_id):
        return self._request('GET', f'/pedidos/{order_id}')


def _error_from_response(response) -> DomainError:
    try:
        detail = (response.json().get('error') or {}).get('detail')
    except (ValueError, AttributeError):
        detail = None
    detail = detail or f'HTTP {response.status_code}'
    if response.status_code == 404:
        return NotFound(detail)
    if response.status_code < 500:
        return ValidationError(detail)
    return TransientSyncError(detail)


__all__ = [
    'CartStorage', 'MemoryCartStorage', 'JsonFileCartStorage', 'OrderStoreClient',
    'LocalOrderStoreClient', 'HttpOrderStoreClient',
]
