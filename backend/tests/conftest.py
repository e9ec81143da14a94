import os, sys, pytest
# Ensure the backend directory is on path so 'catalogo' can be imported
ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), '..'))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)
from catalogo import create_app, get_db
from catalogo.models.catalog import Base
# Import all model modules to ensure tables are registered before create_all
import catalogo.models.order  # noqa: F401
import catalogo.models.audit  # noqa: F401


@pytest.fixture(scope='session', autouse=True)
def app_instance():
    os.environ['DATABASE_URL'] = 'sqlite+pysqlite:///:memory:'
    app = create_app({'OPERATOR_PASSWORD': 'op-secret', 'PUBLIC_BASE_URL': 'https://loja.example.com'})
    # After app and blueprints are registered, ensure all tables exist
    with app.app_context():
        engine = get_db().get_bind()
        Base.metadata.create_all(engine)
    yield app


@pytest.fixture()
def client(app_instance):
    return app_instance.test_client()


@pytest.fixture()
def app_ctx(app_instance):
    with app_instance.app_context():
        yield app_instance


@pytest.fixture()
def operator_headers(app_instance):
    from tests.test_utils_seed import operator_headers as _headers
    # create_access_token requires an active app context
    with app_instance.app_context():
        return _headers()
