from functools import wraps
from flask import abort, current_app
from flask_jwt_extended import verify_jwt_in_request, get_jwt

OPERATOR_ROLE = 'operator'


def require_operator(fn):
    """Guard operator-only endpoints (catalog edits, imports).

    Buyers never authenticate; with OPERATOR_AUTH_REQUIRED off every caller is
    treated as the operator.
    """
    @wraps(fn)
    def wrapper(*args, **kwargs):
        if current_app.config.get('OPERATOR_AUTH_REQUIRED', True):
            verify_jwt_in_request()
            if get_jwt().get('role') != OPERATOR_ROLE:
                abort(403, description='Operator role required')
        return fn(*args, **kwargs)
    return wrapper
