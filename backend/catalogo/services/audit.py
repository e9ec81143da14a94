from __future__ import annotations
from typing import Any, Dict, Optional
from flask_jwt_extended import get_jwt_identity
from catalogo import get_db
from catalogo.models.audit import AuditLog

ANONYMOUS_ACTOR = 'anonymous'


def current_actor() -> str:
    """JWT identity of the caller, or ``anonymous`` when no token was verified."""
    try:
        ident = get_jwt_identity()
    except RuntimeError:
        # operator auth disabled: the route never called verify_jwt_in_request
        return ANONYMOUS_ACTOR
    return str(ident) if ident is not None else ANONYMOUS_ACTOR


def add_audit(action: str, entity: Optional[str] = None, entity_id: Any = None, meta: Optional[Dict[str, Any]] = None) -> AuditLog:
    """Stage an audit entry (e.g. CATALOG.IMPORT) in the current session.

    The caller commits; the entry shares the request's transaction boundary.
    """
    entry = AuditLog(
        actor=current_actor(),
        action=action,
        entity=entity,
        entity_id=None if entity_id is None else str(entity_id),
        meta=dict(meta or {}),
    )
    get_db().add(entry)
    return entry
