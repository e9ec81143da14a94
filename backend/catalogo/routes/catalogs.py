from __future__ import annotations
from flask import Blueprint, request, current_app
from catalogo import get_db
from catalogo.decorators.auth import require_operator
from catalogo.decorators.audit import audit_log
from catalogo.errors import ValidationError
from catalogo.models.catalog import Catalog
from catalogo.services import catalogs as catalog_service
from catalogo.services import product_index
from catalogo.services.csv_rows import decode_upload, parse_csv_text
from catalogo.utils.listing import apply_pagination, make_cached_list_response, make_cached_response, latest_timestamp
from catalogo.utils.sorting import apply_multi_sort

catalogs_bp = Blueprint('catalogs', __name__)


@catalogs_bp.get('/ping')
def ping():
    return {'ok': True}


@catalogs_bp.get('')
def list_catalogs():
    session = get_db()
    q = session.query(Catalog)
    if nome := request.args.get('nome'):
        q = q.filter(Catalog.nome.ilike(f"%{nome}%"))
    allowed = {
        'id': Catalog.id,
        'nome': Catalog.nome,
        'ano': Catalog.ano,
        'created_at': Catalog.created_at,
    }
    # newest first unless the caller asks otherwise
    q = apply_multi_sort(q, request.args.get('sort'), allowed, Catalog.id.desc())
    paged_q, total, limit, offset = apply_pagination(q)
    rows = paged_q.all()
    latest_ts = latest_timestamp(c.updated_at for c in rows)
    return make_cached_list_response([catalog_service.catalog_json(c) for c in rows], total, limit, offset, latest_ts)


@catalogs_bp.get('/<int:catalog_id>')
def get_catalog(catalog_id: int):
    c = catalog_service.get_catalog(catalog_id)
    return make_cached_response(catalog_service.catalog_json(c), c.updated_at)


@catalogs_bp.post('')
@require_operator
@audit_log('CATALOG.CREATE', entity='Catalog', entity_id_key='id', meta_keys=['nome', 'pdf_url'])
def create_catalog():
    c = catalog_service.create_catalog(request.get_json(silent=True) or {})
    return catalog_service.catalog_json(c), 201


@catalogs_bp.patch('/<int:catalog_id>')
@require_operator
@audit_log('CATALOG.UPDATE', entity='Catalog', entity_id_key='id',
           meta_builder=lambda data, rv, args, kwargs: {'fields': sorted((request.get_json(silent=True) or {}).keys())})
def patch_catalog(catalog_id: int):
    c = catalog_service.patch_catalog(catalog_id, request.get_json(silent=True) or {})
    return catalog_service.catalog_json(c)


def _import_rows():
    """Rows from a multipart CSV upload (field ``file``) or a JSON ``rows`` array."""
    upload = request.files.get('file')
    if upload is not None:
        return parse_csv_text(decode_upload(upload.read()))
    data = request.get_json(silent=True)
    if isinstance(data, dict) and 'rows' in data:
        rows = data['rows']
        if not isinstance(rows, list):
            raise ValidationError('rows deve ser uma lista')
        return rows
    raise ValidationError('Envie um arquivo via multipart (field: file) ou JSON {"rows": [...]}')


@catalogs_bp.post('/<int:catalog_id>/importar')
@require_operator
@audit_log('CATALOG.IMPORT', entity='Catalog', entity_id_key='catalogo_id', meta_keys=['count', 'modo'])
def import_products(catalog_id: int):
    mode = request.args.get('mode', product_index.MODE_REPLACE)
    # unknown catalog is reported before the payload is inspected
    catalog_service.get_catalog(catalog_id)
    rows = _import_rows()
    result = product_index.import_bulk(catalog_id, rows, mode)
    current_app.logger.info('Catalog %s import finished: %s rows', catalog_id, result['count'])
    return {'ok': True, 'catalogo_id': catalog_id, 'count': result['count'], 'modo': mode.strip().lower()}


@catalogs_bp.get('/<int:catalog_id>/produtos')
def list_products(catalog_id: int):
    products = product_index.list_by_page(catalog_id, request.args.get('page', 1))
    return make_cached_response([product_index.product_json(p) for p in products])


@catalogs_bp.get('/<int:catalog_id>/busca')
def search_products(catalog_id: int):
    products = product_index.search(catalog_id, request.args.get('q', ''), request.args.get('limit'))
    return [product_index.product_json(p) for p in products]
