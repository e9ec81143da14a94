import hmac
from flask import Blueprint, request, current_app
from flask_jwt_extended import create_access_token, jwt_required, get_jwt_identity, get_jwt
from catalogo.decorators.auth import OPERATOR_ROLE
from catalogo.errors import Unauthorized

auth_bp = Blueprint('auth', __name__)


@auth_bp.post('/login')
def login():
    data = request.get_json(silent=True) or {}
    password = str(data.get('password') or '')
    expected = str(current_app.config.get('OPERATOR_PASSWORD') or '')
    if not expected or not hmac.compare_digest(password.encode(), expected.encode()):
        current_app.logger.warning('Rejected operator login from %s', request.remote_addr)
        raise Unauthorized('Credenciais inválidas')
    token = create_access_token(identity=OPERATOR_ROLE, additional_claims={'role': OPERATOR_ROLE})
    return {'access_token': token}


@auth_bp.get('/me')
@jwt_required()
def me():
    return {'identity': get_jwt_identity(), 'role': get_jwt().get('role')}
