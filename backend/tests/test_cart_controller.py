import json
import threading
import time
from decimal import Decimal
from urllib.parse import parse_qs, urlsplit
import pytest
from catalogo.cart.controller import CartController, STATE_ACTIVE, STATE_EMPTY
from catalogo.cart.ports import LocalOrderStoreClient, MemoryCartStorage, OrderStoreClient
from catalogo.cart.runner import BackgroundRunner, InlineRunner
from catalogo.errors import NotFound, TransientSyncError, ValidationError
from catalogo.services.order_store import get_order
from catalogo.services.product_index import list_by_page, product_json
from tests.test_utils_seed import BONECA, ensure_catalog, seed_products

BOLA = {'pagina': 2, 'nome': 'Bola', 'ref': 'B2', 'qtd_multiplo': 12, 'preco': 4.20}


class UnreachableClient(OrderStoreClient):
    def __init__(self):
        self.calls = 0

    def create_order(self, catalogo_id, meta):
        self.calls += 1
        raise TransientSyncError('connection refused')

    def replace_items(self, order_id, items):
        self.calls += 1
        raise TransientSyncError('connection refused')

    def get_order(self, order_id):
        self.calls += 1
        raise TransientSyncError('connection refused')


def _server_items(app, order_id):
    with app.app_context():
        return [(i['ref'], i['qtd']) for i in get_order(order_id)['itens']]


@pytest.fixture()
def catalog_id(app_instance):
    with app_instance.app_context():
        return seed_products([BONECA, BOLA], nome='Carrinho')


@pytest.fixture()
def cart(app_instance, catalog_id):
    return CartController(catalog_id, MemoryCartStorage(), LocalOrderStoreClient(app_instance), InlineRunner())


def test_add_product_from_index_scenario(app_instance, catalog_id, cart):
    with app_instance.app_context():
        product = product_json(list_by_page(catalog_id, 1)[0])
    assert cart.state == STATE_EMPTY
    line = cart.add_to_cart(product)
    assert line['qtd'] == 3
    assert cart.subtotal('A1') == Decimal('30.00')
    assert cart.state == STATE_ACTIVE
    assert _server_items(app_instance, cart.order_id) == [('A1', 3)]


def test_add_existing_ref_rounds_sum_and_restamps_price(cart):
    cart.add_to_cart(BONECA)
    line = cart.add_to_cart(dict(BONECA, preco=11.5))
    assert line['qtd'] == 6
    assert line['preco'] == 11.5
    assert cart.total == Decimal('69.00')


def test_forced_qty_is_rounded(cart):
    assert cart.add_to_cart(BONECA, forced_qty=4)['qtd'] == 3
    assert cart.add_to_cart(BONECA, forced_qty=2)['qtd'] == 6
    assert cart.add_to_cart(BOLA, forced_qty=0)['qtd'] == 12


def test_set_qty_rounds_to_entry_multiple(app_instance, cart):
    cart.add_to_cart(BONECA)
    assert cart.set_qty('A1', 4)['qtd'] == 3
    assert cart.set_qty('A1', 8)['qtd'] == 9
    assert cart.set_qty('A1', 0)['qtd'] == 3
    assert cart.set_qty('nope', 10) is None
    assert _server_items(app_instance, cart.order_id) == [('A1', 3)]


def test_remove_and_clear_sync_to_server(app_instance, cart):
    cart.add_to_cart(BONECA)
    cart.add_to_cart(BOLA)
    assert sorted(_server_items(app_instance, cart.order_id)) == [('A1', 3), ('B2', 12)]
    cart.remove_from_cart('A1')
    assert [i['ref'] for i in cart.items] == ['B2']
    assert _server_items(app_instance, cart.order_id) == [('B2', 12)]
    order_id = cart.order_id
    cart.clear_cart()
    assert cart.items == []
    # the order outlives an emptied cart
    assert _server_items(app_instance, order_id) == []
    assert cart.order_id == order_id


def test_order_created_once_with_whatsapp_meta(app_instance, cart):
    cart.add_to_cart(BONECA)
    first_id = cart.order_id
    cart.add_to_cart(BOLA)
    assert cart.ensure_order_id() == first_id
    with app_instance.app_context():
        order = get_order(first_id)
    assert order['cliente_contato'] == 'WhatsApp'
    assert order['observacao'] == 'B2B'


def test_items_are_copies(cart):
    cart.add_to_cart(BONECA)
    cart.items[0]['qtd'] = 999
    assert cart.items[0]['qtd'] == 3


def test_sync_failure_is_swallowed(catalog_id, caplog):
    client = UnreachableClient()
    cart = CartController(catalog_id, MemoryCartStorage(), client, InlineRunner())
    line = cart.add_to_cart(BONECA)
    assert line['qtd'] == 3
    assert cart.order_id is None
    assert client.calls == 1
    assert 'Background sync of cart' in caplog.text
    with pytest.raises(TransientSyncError):
        cart.sync()


def test_persistence_round_trip(app_instance, catalog_id):
    storage = MemoryCartStorage()
    cart = CartController(catalog_id, storage, LocalOrderStoreClient(app_instance), InlineRunner())
    cart.add_to_cart(BONECA)
    saved = json.loads(storage.get(f'catalogo_cart_{catalog_id}'))
    assert saved['cart'][0]['ref'] == 'A1'
    assert json.loads(storage.get(f'catalogo_pedido_{catalog_id}')) == {'pedidoId': cart.order_id}

    reloaded = CartController(catalog_id, storage, UnreachableClient(), InlineRunner())
    assert reloaded.items == cart.items
    assert reloaded.order_id == cart.order_id


def test_corrupt_storage_is_ignored(catalog_id):
    storage = MemoryCartStorage({
        f'catalogo_cart_{catalog_id}': '{not json',
        f'catalogo_pedido_{catalog_id}': '["wrong shape"]',
    })
    cart = CartController(catalog_id, storage, UnreachableClient(), InlineRunner())
    assert cart.items == []
    assert cart.order_id is None
    assert cart.state == STATE_EMPTY

    storage.set(f'catalogo_cart_{catalog_id}', json.dumps({'cart': [{'ref': 'A1', 'qtd': 3}, 'junk', {'qtd': 1}]}))
    cart = CartController(catalog_id, storage, UnreachableClient(), InlineRunner())
    assert [i['ref'] for i in cart.items] == ['A1']


def test_load_order_link_replaces_local_cart(app_instance, catalog_id):
    source = CartController(catalog_id, MemoryCartStorage(), LocalOrderStoreClient(app_instance), InlineRunner())
    source.add_to_cart(BOLA)

    target = CartController(catalog_id, MemoryCartStorage(), LocalOrderStoreClient(app_instance), InlineRunner())
    target.add_to_cart(BONECA)
    assert target.load_order_link(source.order_id) is True
    assert [(i['ref'], i['qtd']) for i in target.items] == [('B2', 12)]
    assert target.order_id == source.order_id
    assert json.loads(target.storage.get(f'catalogo_pedido_{catalog_id}')) == {'pedidoId': source.order_id}


def test_load_order_link_failures_leave_cart_untouched(app_instance, catalog_id):
    cart = CartController(catalog_id, MemoryCartStorage(), LocalOrderStoreClient(app_instance), InlineRunner())
    cart.add_to_cart(BONECA)
    before = (cart.items, cart.order_id)
    assert cart.load_order_link('nao-existe') is False
    assert cart.load_order_link('') is False

    with app_instance.app_context():
        other_catalog = ensure_catalog('Outro').id
    other = CartController(other_catalog, MemoryCartStorage(), LocalOrderStoreClient(app_instance), InlineRunner())
    other.add_to_cart(BOLA)
    assert cart.load_order_link(other.order_id) is False

    offline = CartController(catalog_id, MemoryCartStorage(), UnreachableClient(), InlineRunner())
    assert offline.load_order_link(cart.order_id) is False
    assert (cart.items, cart.order_id) == before


def test_checkout_builds_whatsapp_link(app_instance):
    with app_instance.app_context():
        c = ensure_catalog('Checkout', whatsapp_phone='+55 11 98888-7777', empresa_nome='Demo')
        catalog = {'id': c.id, 'nome': 'Checkout', 'whatsapp_phone': '+55 11 98888-7777', 'empresa_nome': 'Demo'}
    cart = CartController(c.id, MemoryCartStorage(), LocalOrderStoreClient(app_instance), InlineRunner())
    cart.add_to_cart(BONECA)
    url = cart.checkout(catalog, 'https://loja.example.com/')
    parts = urlsplit(url)
    assert parts.netloc == 'wa.me'
    assert parts.path == '/5511988887777'
    text = parse_qs(parts.query)['text'][0]
    assert f'https://loja.example.com/p/{cart.order_id}' in text
    assert 'Total: R$ 30,00' in text
    assert _server_items(app_instance, cart.order_id) == [('A1', 3)]


def test_checkout_offline_falls_back_to_local_text(catalog_id):
    cart = CartController(catalog_id, MemoryCartStorage(), UnreachableClient(), InlineRunner())
    cart.add_to_cart(BONECA)
    text = parse_qs(urlsplit(cart.checkout({'nome': 'Offline'}, 'https://loja.example.com')).query)['text'][0]
    assert 'https://loja.example.com/p/(sem-id)' in text
    assert 'Qtd: 3' in text


def test_checkout_empty_cart_rejected(catalog_id):
    cart = CartController(catalog_id, MemoryCartStorage(), UnreachableClient(), InlineRunner())
    with pytest.raises(ValidationError):
        cart.checkout({}, 'https://loja.example.com')


def test_add_requires_ref(cart):
    with pytest.raises(ValidationError):
        cart.add_to_cart({'nome': 'Sem ref', 'qtd_multiplo': 2})


def test_background_sync_converges_to_last_snapshot(app_instance, catalog_id):
    runner = BackgroundRunner(name='cart-test')
    cart = CartController(catalog_id, MemoryCartStorage(), LocalOrderStoreClient(app_instance), runner)
    for _ in range(5):
        cart.add_to_cart(BONECA)
    cart.set_qty('A1', 7)
    assert runner.wait(10) is True
    assert _server_items(app_instance, cart.order_id) == [('A1', 6)]


class SlowCreateClient(OrderStoreClient):
    """Order store whose order creation stays in flight until released."""

    def __init__(self):
        self.creating = threading.Event()
        self.release = threading.Event()
        self.replaced = []

    def create_order(self, catalogo_id, meta):
        self.creating.set()
        self.release.wait(10)
        return {'id': 'pedido-lento'}

    def replace_items(self, order_id, items):
        self.replaced.append((order_id, [(i['ref'], i['qtd']) for i in items]))

    def get_order(self, order_id):
        raise NotFound('Pedido não encontrado')


def test_local_edits_do_not_wait_for_order_creation(catalog_id):
    client = SlowCreateClient()
    runner = BackgroundRunner(name='cart-slow')
    cart = CartController(catalog_id, MemoryCartStorage(), client, runner)
    cart.add_to_cart(BONECA)
    assert client.creating.wait(5)
    started = time.monotonic()
    cart.add_to_cart(BOLA)
    cart.set_qty('A1', 6)
    elapsed = time.monotonic() - started
    assert [i['ref'] for i in cart.items] == ['A1', 'B2']
    client.release.set()
    assert runner.wait(10) is True
    assert elapsed < 0.5
    assert cart.order_id == 'pedido-lento'
    assert client.replaced[-1] == ('pedido-lento', [('A1', 6), ('B2', 12)])


class MalformedClient(OrderStoreClient):
    def create_order(self, catalogo_id, meta):
        return {'status': 'aberto'}

    def replace_items(self, order_id, items):
        raise AssertionError('no order id to sync')

    def get_order(self, order_id):
        return ['not', 'an', 'order']


def test_order_created_without_id_is_a_sync_failure(catalog_id):
    cart = CartController(catalog_id, MemoryCartStorage(), MalformedClient(), InlineRunner())
    cart.add_to_cart(BONECA)
    with pytest.raises(TransientSyncError):
        cart.sync()
    assert cart.order_id is None
    text = parse_qs(urlsplit(cart.checkout({'nome': 'X'}, 'https://loja.example.com')).query)['text'][0]
    assert 'https://loja.example.com/p/(sem-id)' in text
    assert cart.load_order_link('qualquer') is False
    assert cart.items[0]['ref'] == 'A1'
