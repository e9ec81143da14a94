#!/usr/bin/env python
"""Create a demo catalog and load its products.

Usage:
    python backend/scripts/seed_demo.py                        # built-in sample rows
    python backend/scripts/seed_demo.py --csv produtos.csv     # rows from a CSV export
    python backend/scripts/seed_demo.py --csv p.csv --mode append --catalog-id 3
    python backend/scripts/seed_demo.py --dry-run              # print what would be imported
"""
from __future__ import annotations
import os, sys, argparse, textwrap

# Allow running from repo root
sys.path.append(os.path.abspath('backend'))

from catalogo import create_app, get_db  # type: ignore
from catalogo.models.catalog import Base
import catalogo.models.order  # noqa: F401
import catalogo.models.audit  # noqa: F401
from catalogo.errors import DomainError
from catalogo.services.catalogs import create_catalog, get_catalog
from catalogo.services.csv_rows import decode_upload, parse_csv_text, normalize_rows
from catalogo.services.product_index import import_bulk, IMPORT_MODES, MODE_REPLACE

SAMPLE_ROWS = [
    {'pagina': 1, 'nome': 'Boneca X', 'ref': 'A1', 'qtd_multiplo': 3, 'preco': '10,00'},
    {'pagina': 1, 'nome': 'Carrinho de Fricção', 'ref': 'A2', 'qtd_multiplo': 6, 'preco': '7,50'},
    {'pagina': 2, 'nome': 'Quebra-cabeça 500 peças', 'ref': 'B10', 'qtd_multiplo': 2, 'preco': '32,90'},
    {'pagina': 2, 'nome': 'Bola de Vinil', 'ref': 'B11', 'qtd_multiplo': 12, 'preco': '4,20'},
    {'pagina': 3, 'nome': 'Kit Massinha', 'ref': 'C5', 'qtd_multiplo': 4, 'preco': '1.299,00'},
]


def parse_args():
    p = argparse.ArgumentParser(
        description="Seed a demo catalog with products",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=textwrap.dedent("""Examples:\n  sample rows: seed_demo.py\n  from CSV: seed_demo.py --csv produtos.csv\n"""),
    )
    p.add_argument('--csv', metavar='FILE', help='CSV with pagina,nome,ref,qtd_multiplo,preco columns')
    p.add_argument('--catalog-id', type=int, help='Import into this existing catalog instead of creating one')
    p.add_argument('--mode', choices=IMPORT_MODES, default=MODE_REPLACE, help='Import mode (default: replace)')
    p.add_argument('--nome', default='Catálogo Demo', help='Name of the created catalog')
    p.add_argument('--pdf-url', default='https://example.com/catalogo-demo.pdf', help='PDF URL of the created catalog')
    p.add_argument('--whatsapp', default=os.getenv('SEED_WHATSAPP_PHONE', ''), help='WhatsApp phone of the created catalog')
    p.add_argument('--dry-run', action='store_true', help='Only print the rows that would be imported')
    return p.parse_args()


def load_rows(path):
    if not path:
        return SAMPLE_ROWS
    with open(path, 'rb') as fh:
        return parse_csv_text(decode_upload(fh.read()))


def main():
    args = parse_args()
    try:
        rows = load_rows(args.csv)
    except (OSError, DomainError) as e:
        print(f"[ERROR] Could not read rows: {e}")
        sys.exit(2)

    if args.dry_run:
        valid = normalize_rows(rows)
        print(f"[DRY-RUN] {len(valid)} valid rows of {len(rows)}")
        for r in valid:
            print(f"  p{r['pagina']:<3} {r['ref']:<10} x{r['qtd_multiplo']:<3} {r['preco']:>10}  {r['nome']}")
        return

    app = create_app()
    with app.app_context():
        session = get_db()
        # Bootstrap schema when migrations have not been run yet
        Base.metadata.create_all(session.get_bind())
        try:
            if args.catalog_id:
                catalog = get_catalog(args.catalog_id, session)
            else:
                catalog = create_catalog({
                    'nome': args.nome,
                    'pdf_url': args.pdf_url,
                    'whatsapp_phone': args.whatsapp,
                    'empresa_nome': 'Demo Distribuidora',
                    'politica': 'Pedido mínimo R$ 500,00',
                }, session)
            result = import_bulk(catalog.id, rows, args.mode, session)
        except DomainError as e:
            print(f"[ERROR] {e.title}: {e.detail}")
            sys.exit(3)
        print(f"[DONE] Catalog {catalog.id} ({catalog.nome}): {result['count']} products imported ({args.mode})")


if __name__ == '__main__':
    main()
