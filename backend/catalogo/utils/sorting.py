from __future__ import annotations
from typing import Any, List, Mapping, Optional
from catalogo.errors import ValidationError


def parse_sort(sort_expr: Optional[str], allowed: Mapping[str, Any]) -> List[Any]:
    """Ordering clauses for ``"nome,-ano"`` style expressions.

    A leading '-' sorts that field descending; unknown fields are a 400.
    """
    clauses = []
    for token in (t.strip() for t in (sort_expr or '').split(',')):
        if not token:
            continue
        field = token.lstrip('-')
        column = allowed.get(field)
        if column is None:
            raise ValidationError(f'Campo de ordenação inválido: {field}')
        clauses.append(column.desc() if token.startswith('-') else column.asc())
    return clauses


def apply_multi_sort(query, sort_expr: Optional[str], allowed: Mapping[str, Any], tie_breaker):
    # tie_breaker is a full ordering clause (e.g. Catalog.id.desc()) kept last for stable pages
    return query.order_by(*parse_sort(sort_expr, allowed), tie_breaker)


__all__ = ['parse_sort', 'apply_multi_sort']
