"""Audit logging decorator for operator route handlers.

Usage:

@audit_log('CATALOG.CREATE', entity='Catalog', entity_id_key='id', meta_keys=['nome'])
def create_catalog():
    ... return {'id': c.id, 'nome': c.nome}, 201

@audit_log('CATALOG.IMPORT', entity='Catalog', entity_id_arg='catalog_id',
           meta_builder=lambda data, rv, args, kwargs: {'count': data.get('count')})
def import_products(catalog_id): ...

Parameters:
  action: required audit action code (e.g. CATALOG.CREATE)
  entity: optional entity label (Catalog, Order)
  entity_id_key: key in the returned JSON object whose value becomes entity_id.
  entity_id_arg: name of the path parameter to use for entity_id (fallback if entity_id_key absent).
  meta_keys: list of keys to project from returned JSON into meta dict (shallow copy).
  meta_builder: callable returning a meta dict; receives (data, original_return_value, args, kwargs).

Only successful handler returns are audited; a raised error skips the entry.
"""
from __future__ import annotations
import logging
from functools import wraps
from typing import Any, Callable, Iterable, Optional

from sqlalchemy.exc import SQLAlchemyError

from catalogo.services.audit import add_audit
from catalogo import get_db

log = logging.getLogger(__name__)


def _extract_payload(rv: Any):
    """Return the JSON-able dict of a Flask view return value."""
    if isinstance(rv, tuple) and rv:
        return rv[0]
    return rv


def audit_log(
    action: str,
    *,
    entity: Optional[str] = None,
    entity_id_key: Optional[str] = None,
    entity_id_arg: Optional[str] = None,
    meta_keys: Optional[Iterable[str]] = None,
    meta_builder: Optional[Callable[[dict, Any, tuple, dict], dict]] = None,
):
    def outer(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            rv = fn(*args, **kwargs)
            data = _extract_payload(rv)
            if not isinstance(data, dict):
                data = {}
            entity_id = None
            if entity_id_key and entity_id_key in data:
                entity_id = data.get(entity_id_key)
            elif entity_id_arg and entity_id_arg in kwargs:
                entity_id = kwargs.get(entity_id_arg)
            meta = None
            if meta_builder:
                meta = meta_builder(data, rv, args, kwargs)
            elif meta_keys:
                meta = {k: data.get(k) for k in meta_keys if k in data}
            add_audit(action, entity, entity_id, meta)
            session = get_db()
            try:
                session.commit()
            except SQLAlchemyError:
                # the audited change itself is already committed
                session.rollback()
                log.exception('Audit entry %s could not be stored', action)
            return rv
        return wrapper
    return outer
