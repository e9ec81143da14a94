import pytest
from sqlalchemy.exc import SQLAlchemyError
from catalogo import get_db
from catalogo.errors import InvalidReference, NoFieldsProvided, NotFound, ValidationError
from catalogo.services import order_store
from catalogo.services.order_store import (
    add_or_update_item, create_order, get_order, patch_order, remove_item, replace_items,
)
from tests.test_utils_seed import ensure_catalog

LINE_A1 = {'ref': 'A1', 'nome': 'Boneca X', 'pagina': 1, 'qtd': 3, 'qtd_multiplo': 3, 'preco': 10.0}
LINE_B2 = {'ref': 'B2', 'nome': 'Bola', 'pagina': 2, 'qtd': 12, 'qtd_multiplo': 12, 'preco': '4,20'}


@pytest.fixture()
def order_id(app_ctx):
    c = ensure_catalog('Pedidos')
    return create_order(c.id, {'cliente_contato': 'WhatsApp', 'observacao': 'B2B'}).id


def test_create_order_defaults(app_ctx):
    c = ensure_catalog('Create Order')
    o = create_order(c.id, {'cliente_nome': '  Loja Azul '})
    assert o.id
    assert o.catalogo_id == c.id
    assert o.cliente_nome == 'Loja Azul'
    assert o.status == 'aberto'
    body = get_order(o.id)
    assert body['itens'] == []
    assert body['status'] == 'aberto'


def test_create_order_requires_existing_catalog(app_ctx):
    with pytest.raises(ValidationError):
        create_order(None)
    with pytest.raises(InvalidReference):
        create_order(999999)


def test_create_order_with_client_id_is_idempotent(app_ctx):
    c = ensure_catalog('Idempotent')
    first = create_order(c.id, {'id': 'pedido-fixo-1', 'cliente_nome': 'Primeiro'})
    assert first.id == 'pedido-fixo-1'
    again = create_order(c.id, {'id': 'pedido-fixo-1', 'cliente_nome': 'Segundo'})
    assert again.id == 'pedido-fixo-1'
    assert get_order('pedido-fixo-1')['cliente_nome'] == 'Primeiro'


def test_create_order_rejects_oversized_id(app_ctx):
    c = ensure_catalog('Long id')
    with pytest.raises(ValidationError):
        create_order(c.id, {'id': 'x' * 65})


def test_get_order_unknown(app_ctx):
    with pytest.raises(NotFound):
        get_order('nao-existe')


def test_patch_order(order_id):
    o = patch_order(order_id, {'cliente_nome': 'Maria', 'status': 'enviado', 'ignored': 'x'})
    assert o.cliente_nome == 'Maria'
    assert o.status == 'enviado'
    assert o.updated_at is not None
    assert patch_order(order_id, {'status': ''}).status == 'aberto'


def test_patch_order_errors(order_id):
    with pytest.raises(NoFieldsProvided):
        patch_order(order_id, {})
    with pytest.raises(NoFieldsProvided):
        patch_order(order_id, {'id': 'other', 'catalogo_id': 3})
    with pytest.raises(NotFound):
        patch_order('nao-existe', {'cliente_nome': 'X'})


def test_replace_items_normalizes_lines(order_id):
    replace_items(order_id, [
        LINE_A1,
        LINE_B2,
        {'ref': '', 'qtd': 5},
        {'ref': 'Z0', 'qtd': 0},
        {'ref': 'Z1', 'qtd': -3},
        {'ref': 'M1', 'qtd': 2, 'qtd_multiplo': 0},
    ])
    itens = {i['ref']: i for i in get_order(order_id)['itens']}
    assert sorted(itens) == ['A1', 'B2', 'M1']
    assert itens['B2']['preco'] == 4.2
    assert itens['M1']['qtd_multiplo'] == 1
    assert itens['A1'] == {'ref': 'A1', 'nome': 'Boneca X', 'pagina': 1, 'qtd': 3, 'qtd_multiplo': 3, 'preco': 10.0}


def test_replace_items_overwrites_previous_lines(order_id):
    replace_items(order_id, [LINE_A1, LINE_B2])
    replace_items(order_id, [dict(LINE_A1, qtd=9)])
    itens = get_order(order_id)['itens']
    assert [(i['ref'], i['qtd']) for i in itens] == [('A1', 9)]


def test_replace_items_same_snapshot_is_noop(order_id):
    replace_items(order_id, [LINE_A1, LINE_B2])
    first = get_order(order_id)['itens']
    replace_items(order_id, first)
    assert get_order(order_id)['itens'] == first


def test_replace_items_duplicate_ref_last_wins(order_id):
    replace_items(order_id, [LINE_A1, dict(LINE_A1, qtd=6)])
    assert [i['qtd'] for i in get_order(order_id)['itens']] == [6]


def test_empty_replace_keeps_order(order_id):
    replace_items(order_id, [LINE_A1])
    assert replace_items(order_id, []) == {'ok': True}
    body = get_order(order_id)
    assert body['itens'] == []
    assert body['id'] == order_id


def test_replace_items_errors(order_id):
    with pytest.raises(ValidationError):
        replace_items(order_id, None)
    with pytest.raises(ValidationError):
        replace_items(order_id, {'ref': 'A1'})
    with pytest.raises(NotFound):
        replace_items('nao-existe', [])


def test_add_item_is_additive(order_id):
    meta = {'nome': 'Boneca X', 'pagina': 1, 'qtd_multiplo': 3, 'preco': 10}
    add_or_update_item(order_id, 'A1', 3, meta)
    line = add_or_update_item(order_id, 'A1', 3, meta)
    assert line['qtd'] == 6
    assert [i['qtd'] for i in get_order(order_id)['itens']] == [6]


def test_add_item_two_calls_match_one_combined_call(app_ctx):
    c = ensure_catalog('Additive')
    split = create_order(c.id).id
    combined = create_order(c.id).id
    add_or_update_item(split, 'R', 4)
    add_or_update_item(split, 'R', 5)
    add_or_update_item(combined, 'R', 9)
    assert get_order(split)['itens'][0]['qtd'] == get_order(combined)['itens'][0]['qtd'] == 9


def test_add_item_restamps_snapshot(order_id):
    add_or_update_item(order_id, 'A1', 3, {'nome': 'Boneca X', 'qtd_multiplo': 3, 'preco': 10})
    line = add_or_update_item(order_id, 'A1', 3, {'nome': 'Boneca X', 'qtd_multiplo': 3, 'preco': '11,50'})
    assert line['preco'] == 11.5


def test_add_item_default_delta_and_zero_delta(order_id):
    assert add_or_update_item(order_id, 'D1')['qtd'] == 1
    assert add_or_update_item(order_id, 'D1', 0)['qtd'] == 2


def test_add_item_clamps_at_zero_and_deletes_line(order_id):
    add_or_update_item(order_id, 'A1', 3)
    line = add_or_update_item(order_id, 'A1', -10)
    assert line['qtd'] == 0
    assert get_order(order_id)['itens'] == []
    # a negative delta on a missing line never stores it
    assert add_or_update_item(order_id, 'Q1', -2)['qtd'] == 0
    assert get_order(order_id)['itens'] == []


def test_add_item_errors(order_id):
    with pytest.raises(ValidationError):
        add_or_update_item(order_id, '  ', 1)
    with pytest.raises(NotFound):
        add_or_update_item('nao-existe', 'A1', 1)


def test_remove_item_is_idempotent(order_id):
    replace_items(order_id, [LINE_A1, LINE_B2])
    assert remove_item(order_id, 'A1') == {'ok': True}
    assert remove_item(order_id, 'A1') == {'ok': True}
    assert remove_item('nao-existe', 'A1') == {'ok': True}
    assert [i['ref'] for i in get_order(order_id)['itens']] == ['B2']
    with pytest.raises(ValidationError):
        remove_item(order_id, None)


def test_lines_ordered_by_name_then_ref(order_id):
    replace_items(order_id, [
        {'ref': 'Z', 'nome': 'Alfa', 'qtd': 1},
        {'ref': 'B', 'nome': 'Beta', 'qtd': 1},
        {'ref': 'A', 'nome': 'Alfa', 'qtd': 1},
    ])
    assert [i['ref'] for i in get_order(order_id)['itens']] == ['A', 'Z', 'B']


def test_normalize_line():
    assert order_store.normalize_line({'ref': 'A', 'qtd': '2,0'})['qtd'] == 2
    assert order_store.normalize_line({'ref': 'A', 'qtd': 'x'}) is None
    assert order_store.normalize_line(['A', 1]) is None


def test_replace_items_failure_keeps_previous_lines(order_id, monkeypatch):
    replace_items(order_id, [LINE_A1, LINE_B2])
    session = get_db()

    def failing_commit():
        raise SQLAlchemyError('disk full')

    monkeypatch.setattr(session, 'commit', failing_commit)
    with pytest.raises(SQLAlchemyError):
        replace_items(order_id, [dict(LINE_A1, qtd=9)], session=session)
    monkeypatch.undo()
    assert [(i['ref'], i['qtd']) for i in get_order(order_id)['itens']] == [('B2', 12), ('A1', 3)]
