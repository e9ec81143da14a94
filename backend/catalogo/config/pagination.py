DEFAULT_LIMIT = 50
MAX_LIMIT = 200


def _as_int(raw, default):
    if raw is None or str(raw).strip() == '':
        return default
    return int(str(raw).strip())


def normalize_pagination(limit_raw, offset_raw):
    """Clamp ``limit`` to 1..MAX_LIMIT and ``offset`` to >= 0; blanks take the defaults."""
    try:
        limit = _as_int(limit_raw, DEFAULT_LIMIT)
        offset = _as_int(offset_raw, 0)
    except ValueError:
        raise ValueError('limit/offset devem ser inteiros')
    return max(1, min(limit, MAX_LIMIT)), max(0, offset)
