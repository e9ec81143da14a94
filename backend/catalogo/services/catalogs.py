"""Operator-side catalog header management (create / patch / lookup)."""
from __future__ import annotations
from typing import Any, Dict, Optional

from sqlalchemy import select

from catalogo import get_db
from catalogo.errors import NotFound, NoFieldsProvided, ValidationError
from catalogo.models.catalog import Catalog
from catalogo.utils.validation import clean_str

OPTIONAL_TEXT_FIELDS = ('empresa_nome', 'whatsapp_phone', 'politica')


def catalog_json(c: Catalog) -> Dict[str, Any]:
    return {
        'id': c.id,
        'nome': c.nome,
        'ano': c.ano,
        'pdf_url': c.pdf_url,
        'empresa_nome': c.empresa_nome,
        'whatsapp_phone': c.whatsapp_phone,
        'politica': c.politica,
        'created_at': c.created_at.isoformat() if c.created_at else None,
    }


def _parse_ano(value: Any) -> Optional[int]:
    if value is None or value == '':
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValidationError('ano inválido')


def get_catalog(catalog_id: int, session=None) -> Catalog:
    session = session or get_db()
    c = session.execute(select(Catalog).where(Catalog.id == catalog_id)).scalar_one_or_none()
    if not c:
        raise NotFound('Catálogo não encontrado')
    return c


def create_catalog(data: Dict[str, Any], session=None) -> Catalog:
    session = session or get_db()
    nome = clean_str(data.get('nome'))
    pdf_url = clean_str(data.get('pdf_url'))
    if not nome:
        raise ValidationError('nome é obrigatório')
    if not pdf_url:
        raise ValidationError('pdf_url é obrigatório')
    c = Catalog(
        nome=nome,
        ano=_parse_ano(data.get('ano')),
        pdf_url=pdf_url,
        **{k: clean_str(data.get(k)) for k in OPTIONAL_TEXT_FIELDS},
    )
    session.add(c)
    session.commit()
    return c


def patch_catalog(catalog_id: int, data: Dict[str, Any], session=None) -> Catalog:
    session = session or get_db()
    changes: Dict[str, Any] = {}
    if 'nome' in data:
        nome = clean_str(data['nome'])
        if not nome:
            raise ValidationError('nome não pode ser vazio')
        changes['nome'] = nome
    if 'ano' in data:
        changes['ano'] = _parse_ano(data['ano'])
    if 'pdf_url' in data:
        pdf_url = clean_str(data['pdf_url'])
        if not pdf_url:
            raise ValidationError('pdf_url não pode ser vazio')
        changes['pdf_url'] = pdf_url
    for field in OPTIONAL_TEXT_FIELDS:
        if field in data:
            changes[field] = clean_str(data[field])
    if not changes:
        raise NoFieldsProvided()
    c = get_catalog(catalog_id, session)
    for field, value in changes.items():
        setattr(c, field, value)
    session.commit()
    return c


__all__ = ['catalog_json', 'get_catalog', 'create_catalog', 'patch_catalog']
