from tests.test_utils_seed import ensure_catalog
from catalogo.services.product_index import import_bulk


def test_etag_conditional_catalog(client, app_instance, operator_headers):
    with app_instance.app_context():
        cid = ensure_catalog('ETag Catalogo').id
    first = client.get(f'/catalogos/{cid}')
    assert first.status_code == 200
    etag = first.headers.get('ETag')
    assert etag
    assert first.headers.get('Last-Modified')
    second = client.get(f'/catalogos/{cid}', headers={'If-None-Match': etag})
    assert second.status_code == 304
    assert second.headers.get('ETag') == etag
    third = client.get(f'/catalogos/{cid}', headers={'If-Modified-Since': first.headers['Last-Modified']})
    assert third.status_code == 304
    # an edit changes the validator
    client.patch(f'/catalogos/{cid}', json={'nome': 'ETag Catalogo 2'}, headers=operator_headers)
    fourth = client.get(f'/catalogos/{cid}', headers={'If-None-Match': etag})
    assert fourth.status_code == 200
    assert fourth.headers.get('ETag') != etag


def test_etag_conditional_products_page(client, app_instance):
    with app_instance.app_context():
        cid = ensure_catalog('ETag Produtos').id
        import_bulk(cid, [{'pagina': 1, 'nome': 'A', 'ref': 'E1', 'preco': 1}])
    first = client.get(f'/catalogos/{cid}/produtos?page=1')
    etag = first.headers.get('ETag')
    assert etag
    assert 'Last-Modified' not in first.headers
    assert client.get(f'/catalogos/{cid}/produtos?page=1', headers={'If-None-Match': etag}).status_code == 304
    # quoted validators match too
    assert client.get(f'/catalogos/{cid}/produtos?page=1', headers={'If-None-Match': f'"{etag}"'}).status_code == 304
    with app_instance.app_context():
        import_bulk(cid, [{'pagina': 1, 'nome': 'A', 'ref': 'E1', 'preco': 2}])
    changed = client.get(f'/catalogos/{cid}/produtos?page=1', headers={'If-None-Match': etag})
    assert changed.status_code == 200
    assert changed.get_json()[0]['preco'] == 2.0


def test_etag_conditional_catalog_list(client, app_instance):
    with app_instance.app_context():
        ensure_catalog('ETag Lista')
    first = client.get('/catalogos', query_string={'nome': 'ETag Lista'})
    etag = first.headers.get('ETag')
    assert etag
    assert client.get('/catalogos', query_string={'nome': 'ETag Lista'}, headers={'If-None-Match': etag}).status_code == 304
