from __future__ import annotations
from typing import Iterable, Optional, Tuple, Any
from flask import request, make_response, jsonify
from sqlalchemy.orm import Query
from catalogo.config.pagination import normalize_pagination
from catalogo.errors import ValidationError
import hashlib
import json
from datetime import datetime, timezone, timedelta
from email.utils import parsedate_to_datetime, format_datetime

TIMESTAMP_TOLERANCE = timedelta(seconds=1)

def canonicalize_timestamp(dt: datetime) -> datetime:
    """Return UTC tz-aware timestamp truncated to whole seconds (microseconds removed)."""
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.replace(microsecond=0)

def _iso(dt: Optional[datetime]) -> str:
    if not isinstance(dt, datetime):
        return ''
    return canonicalize_timestamp(dt).isoformat().replace('+00:00', 'Z')

def apply_pagination(q: Query) -> Tuple[Query, int, int, int]:
    try:
        limit, offset = normalize_pagination(request.args.get('limit'), request.args.get('offset'))
    except ValueError as e:
        raise ValidationError(str(e))
    total = q.count()
    return q.offset(offset).limit(limit), total, limit, offset

def compute_etag(body: Any, latest_ts: Optional[str] = '') -> str:
    seed = f"{json.dumps(body, sort_keys=True, default=str)}|{latest_ts or ''}"
    return hashlib.sha256(seed.encode()).hexdigest()[:32]

def build_list_payload(rows: list, total: int, limit: int, offset: int):
    return {
        'data': rows,
        'pagination': {
            'total': total,
            'limit': limit,
            'offset': offset,
            'returned': len(rows)
        }
    }

def _http_date(dt: datetime) -> str:
    """Return RFC1123 HTTP-date string in GMT."""
    return format_datetime(dt, usegmt=True)

def _set_validators(resp, etag: str, latest_ts: Optional[datetime]):
    resp.headers['ETag'] = etag
    if isinstance(latest_ts, datetime):
        latest_c = canonicalize_timestamp(latest_ts)
        resp.headers['Last-Modified'] = _http_date(latest_c)
        resp.headers['X-Last-Modified-ISO'] = _iso(latest_c)
    return resp

def make_cached_response(body: Any, latest_ts: Optional[datetime] = None):
    """JSON response carrying ETag / Last-Modified validators for ``body``.

    Returns a bare 304 when the request's validators still match.
    """
    etag = compute_etag(body, _iso(latest_ts))
    cond = handle_conditional(etag, latest_ts)
    if cond is not None:
        return cond
    if isinstance(body, list):
        resp = make_response(jsonify(body))
    else:
        resp = make_response(body)
    return _set_validators(resp, etag, latest_ts)

def make_cached_list_response(rows: list, total: int, limit: int, offset: int, latest_ts: Optional[datetime] = None):
    return make_cached_response(build_list_payload(rows, total, limit, offset), latest_ts)

def latest_timestamp(values: Iterable[Optional[datetime]]) -> Optional[datetime]:
    stamps = [canonicalize_timestamp(v) for v in values if isinstance(v, datetime)]
    return max(stamps) if stamps else None

def _parse_if_modified_since(header_val: str) -> Optional[datetime]:
    if not header_val:
        return None
    # Try ISO 8601 first
    try:
        dt = datetime.fromisoformat(header_val.replace('Z', '+00:00'))
        if dt.tzinfo is None:
            dt = dt.replace(tzinfo=timezone.utc)
        return dt
    except ValueError:
        pass
    # Try HTTP-date (RFC 1123)
    try:
        dt = parsedate_to_datetime(header_val)
    except (TypeError, ValueError):
        return None
    if dt and dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt

def handle_conditional(etag_value: str, latest_ts: Optional[datetime]):
    """Evaluate conditional request headers.

    Precedence: If-None-Match over If-Modified-Since (per RFC 9110 semantics).
    Returns a 304 response object if conditions satisfied, else None.
    """
    inm = request.headers.get('If-None-Match')
    if inm and inm.strip('"') == etag_value:
        return _set_validators(make_response('', 304), etag_value, latest_ts)
    # Only evaluate If-Modified-Since if If-None-Match was not a match / absent
    ims_raw = request.headers.get('If-Modified-Since')
    if ims_raw and isinstance(latest_ts, datetime):
        ims_dt = _parse_if_modified_since(ims_raw)
        if ims_dt:
            latest_c = canonicalize_timestamp(latest_ts)
            ims_c = canonicalize_timestamp(ims_dt)
            if latest_c <= ims_c + TIMESTAMP_TOLERANCE:
                return _set_validators(make_response('', 304), etag_value, latest_ts)
    return None
