"""catalogs, products, orders and audit log

Revision ID: 0001_catalogs_orders
Revises: 
Create Date: 2026-01-12
"""
from __future__ import annotations
from alembic import op
import sqlalchemy as sa

revision = '0001_catalogs_orders'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table('catalogos',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('nome', sa.String(length=200), nullable=False),
        sa.Column('ano', sa.Integer(), nullable=True),
        sa.Column('pdf_url', sa.Text(), nullable=False),
        sa.Column('empresa_nome', sa.String(length=200), nullable=True),
        sa.Column('whatsapp_phone', sa.String(length=32), nullable=True),
        sa.Column('politica', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
    )

    op.create_table('catalogo_produtos',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('catalogo_id', sa.Integer(), sa.ForeignKey('catalogos.id', ondelete='CASCADE'), nullable=False),
        sa.Column('pagina', sa.Integer(), nullable=False),
        sa.Column('ref', sa.String(length=80), nullable=False),
        sa.Column('nome', sa.String(length=255), nullable=False),
        sa.Column('qtd_multiplo', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('preco', sa.Numeric(12, 2), nullable=False, server_default='0'),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.UniqueConstraint('catalogo_id', 'ref', name='uq_catalogo_produto_ref'),
    )
    op.create_index('ix_catalogo_produtos_pagina', 'catalogo_produtos', ['catalogo_id', 'pagina'])

    op.create_table('pedidos',
        sa.Column('id', sa.String(length=64), primary_key=True),
        sa.Column('catalogo_id', sa.Integer(), sa.ForeignKey('catalogos.id'), nullable=False),
        sa.Column('cliente_nome', sa.String(length=200), nullable=True),
        sa.Column('cliente_contato', sa.String(length=200), nullable=True),
        sa.Column('observacao', sa.Text(), nullable=True),
        sa.Column('status', sa.String(length=32), nullable=False, server_default='aberto'),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index('ix_pedidos_catalogo_id', 'pedidos', ['catalogo_id'])

    op.create_table('pedido_itens',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('pedido_id', sa.String(length=64), sa.ForeignKey('pedidos.id', ondelete='CASCADE'), nullable=False),
        sa.Column('ref', sa.String(length=80), nullable=False),
        sa.Column('nome', sa.String(length=255), nullable=False, server_default=''),
        sa.Column('pagina', sa.Integer(), nullable=True),
        sa.Column('qtd', sa.Integer(), nullable=False),
        sa.Column('qtd_multiplo', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('preco', sa.Numeric(12, 2), nullable=False, server_default='0'),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.UniqueConstraint('pedido_id', 'ref', name='uq_pedido_item_ref'),
    )
    op.create_index('ix_pedido_itens_pedido_id', 'pedido_itens', ['pedido_id'])

    op.create_table('audit_logs',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('actor', sa.String(length=64), nullable=False),
        sa.Column('action', sa.String(length=64), nullable=False),
        sa.Column('entity', sa.String(length=64), nullable=True),
        sa.Column('entity_id', sa.String(length=64), nullable=True),
        sa.Column('meta', sa.JSON(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index('ix_audit_logs_actor', 'audit_logs', ['actor'])
    op.create_index('ix_audit_logs_action', 'audit_logs', ['action'])


def downgrade():
    op.drop_index('ix_audit_logs_action', table_name='audit_logs')
    op.drop_index('ix_audit_logs_actor', table_name='audit_logs')
    op.drop_table('audit_logs')
    op.drop_index('ix_pedido_itens_pedido_id', table_name='pedido_itens')
    op.drop_table('pedido_itens')
    op.drop_index('ix_pedidos_catalogo_id', table_name='pedidos')
    op.drop_table('pedidos')
    op.drop_index('ix_catalogo_produtos_pagina', table_name='catalogo_produtos')
    op.drop_table('catalogo_produtos')
    op.drop_table('catalogos')
