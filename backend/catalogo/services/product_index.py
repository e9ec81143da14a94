"""Catalog product index: bulk import, per-page listing and ranked search."""
from __future__ import annotations
import logging
from typing import Any, Dict, Iterable, List, Mapping

from sqlalchemy import select, delete, case
from sqlalchemy.exc import SQLAlchemyError

from catalogo import get_db
from catalogo.config.pagination import DEFAULT_LIMIT, MAX_LIMIT
from catalogo.errors import ImportAbortedError, ValidationError
from catalogo.models.catalog import CatalogProduct
from catalogo.services.catalogs import get_catalog
from catalogo.services.csv_rows import normalize_rows
from catalogo.utils.validation import to_whole_number

log = logging.getLogger(__name__)

MODE_REPLACE = 'replace'
MODE_APPEND = 'append'
IMPORT_MODES = (MODE_REPLACE, MODE_APPEND)


def product_json(p: CatalogProduct) -> Dict[str, Any]:
    return {
        'pagina': p.pagina,
        'nome': p.nome,
        'ref': p.ref,
        'qtd_multiplo': p.qtd_multiplo,
        'preco': float(p.preco),
    }


def import_bulk(catalogo_id: int, rows: Iterable[Mapping[str, Any]], mode: str = MODE_REPLACE, session=None) -> Dict[str, int]:
    """Load product rows into a catalog in a single transaction.

    ``replace`` drops the catalog's current products first; ``append`` upserts by
    ref and keeps products absent from ``rows``. Unusable rows are skipped.
    Either every row lands or none does.
    """
    session = session or get_db()
    mode = (mode or MODE_REPLACE).strip().lower()
    if mode not in IMPORT_MODES:
        raise ValidationError(f"mode inválido: use {' ou '.join(IMPORT_MODES)}")
    get_catalog(catalogo_id, session)
    records = normalize_rows(rows)
    if not records:
        raise ValidationError('Nenhuma linha válida para importar')
    # Later rows win when a ref repeats inside the batch
    by_ref = {r['ref']: r for r in records}
    try:
        if mode == MODE_REPLACE:
            session.execute(delete(CatalogProduct).where(CatalogProduct.catalogo_id == catalogo_id))
            existing = {}
        else:
            existing = {
                p.ref: p for p in session.execute(
                    select(CatalogProduct).where(CatalogProduct.catalogo_id == catalogo_id)
                ).scalars()
            }
        for ref, rec in by_ref.items():
            product = existing.get(ref)
            if product is None:
                session.add(CatalogProduct(catalogo_id=catalogo_id, **rec))
            else:
                product.pagina = rec['pagina']
                product.nome = rec['nome']
                product.qtd_multiplo = rec['qtd_multiplo']
                product.preco = rec['preco']
        session.commit()
    except SQLAlchemyError as e:
        session.rollback()
        log.exception('Import into catalog %s aborted', catalogo_id)
        raise ImportAbortedError(f'Falha ao importar: {e.__class__.__name__}') from e
    log.info('Imported %d rows into catalog %s (mode=%s)', len(records), catalogo_id, mode)
    return {'count': len(records)}


def parse_page(raw: Any) -> int:
    page = to_whole_number(raw)
    if page is None or page <= 0:
        raise ValidationError('page inválido')
    return page


def list_by_page(catalogo_id: int, page: Any, session=None) -> List[CatalogProduct]:
    session = session or get_db()
    page = parse_page(page)
    stmt = (
        select(CatalogProduct)
        .where(CatalogProduct.catalogo_id == catalogo_id, CatalogProduct.pagina == page)
        .order_by(CatalogProduct.nome.asc(), CatalogProduct.ref.asc())
    )
    return list(session.execute(stmt).scalars())


def _like_pattern(term: str) -> str:
    escaped = term.replace('\\', '\\\\').replace('%', '\\%').replace('_', '\\_')
    return f'%{escaped}%'


def normalize_limit(raw: Any) -> int:
    limit = to_whole_number(raw)
    if limit is None:
        return DEFAULT_LIMIT
    return max(1, min(limit, MAX_LIMIT))


def search(catalogo_id: int, term: Any, limit: Any = DEFAULT_LIMIT, session=None) -> List[CatalogProduct]:
    """Case-insensitive substring search over ref and nome.

    Ref matches come first so a typed part code lands on its product even when
    many names contain the same text; each tier is ordered by page, name, ref.
    """
    q = str(term or '').strip()
    if not q:
        return []
    session = session or get_db()
    pattern = _like_pattern(q)
    ref_match = CatalogProduct.ref.ilike(pattern, escape='\\')
    name_match = CatalogProduct.nome.ilike(pattern, escape='\\')
    tier = case((ref_match, 0), else_=1)
    stmt = (
        select(CatalogProduct)
        .where(CatalogProduct.catalogo_id == catalogo_id, ref_match | name_match)
        .order_by(tier, CatalogProduct.pagina.asc(), CatalogProduct.nome.asc(), CatalogProduct.ref.asc())
        .limit(normalize_limit(limit))
    )
    return list(session.execute(stmt).scalars())


__all__ = [
    'MODE_REPLACE', 'MODE_APPEND', 'IMPORT_MODES', 'product_json',
    'import_bulk', 'parse_page', 'list_by_page', 'normalize_limit', 'search',
]
