"""Product import input adapter: raw tabular rows -> validated product records.

``normalize_rows`` is the pure transform used by every import path; rows that are
not usable (non positive-integer ``pagina``, blank ``ref`` or ``nome``) are
dropped without failing the batch. ``parse_csv_text`` only decodes an uploaded
file into raw rows and checks the header.
"""
from __future__ import annotations
import csv
import io
from typing import Any, Dict, Iterable, List, Mapping, Optional

from catalogo.errors import ValidationError
from catalogo.utils.validation import clean_str, to_int, to_whole_number, to_price

REQUIRED_COLUMNS = ('pagina', 'nome', 'ref', 'qtd_multiplo', 'preco')


def normalize_row(raw: Mapping[str, Any]) -> Optional[Dict[str, Any]]:
    """Validated record for one raw row, or None when the row must be skipped."""
    if not isinstance(raw, Mapping):
        return None
    pagina = to_whole_number(raw.get('pagina'))
    nome = clean_str(raw.get('nome'))
    ref = clean_str(raw.get('ref'))
    if pagina is None or pagina <= 0:
        return None
    if not ref or not nome:
        return None
    multiplo = to_int(raw.get('qtd_multiplo'), 1)
    return {
        'pagina': pagina,
        'nome': nome,
        'ref': ref,
        'qtd_multiplo': multiplo if multiplo and multiplo > 0 else 1,
        'preco': to_price(raw.get('preco')),
    }


def normalize_rows(raw_rows: Iterable[Mapping[str, Any]]) -> List[Dict[str, Any]]:
    out = []
    for raw in raw_rows:
        rec = normalize_row(raw)
        if rec is not None:
            out.append(rec)
    return out


def _sniff_delimiter(header_line: str) -> str:
    # Spreadsheet exports in pt-BR locales use ';'
    return ';' if header_line.count(';') > header_line.count(',') else ','


def parse_csv_text(text: str) -> List[Dict[str, Any]]:
    """Decode CSV text (header row required) into raw row dicts.

    Header names are matched case-insensitively; every column in
    ``REQUIRED_COLUMNS`` must be present.
    """
    text = text.lstrip('\ufeff')
    first_line = next((l for l in text.splitlines() if l.strip()), None)
    if first_line is None:
        return []
    reader = csv.reader(io.StringIO(text), delimiter=_sniff_delimiter(first_line))
    records = (cols for cols in reader if any(c.strip() for c in cols))
    header_cols = next(records, None)
    if header_cols is None:
        return []
    header = [h.strip().lower() for h in header_cols]
    missing = [c for c in REQUIRED_COLUMNS if c not in header]
    if missing:
        raise ValidationError(f"CSV inválido: faltando colunas: {', '.join(missing)}")
    idx = {c: header.index(c) for c in REQUIRED_COLUMNS}
    rows = []
    for cols in records:
        rows.append({c: (cols[i].strip() if i < len(cols) else '') for c, i in idx.items()})
    return rows


def decode_upload(data: bytes) -> str:
    try:
        return data.decode('utf-8-sig')
    except UnicodeDecodeError:
        # Older Excel exports on Windows
        return data.decode('cp1252', errors='replace')


__all__ = ['REQUIRED_COLUMNS', 'normalize_row', 'normalize_rows', 'parse_csv_text', 'decode_upload']
