from __future__ import annotations
from decimal import Decimal
from sqlalchemy.orm import declarative_base, Mapped, mapped_column
from sqlalchemy import Integer, String, Text, Numeric, ForeignKey, UniqueConstraint, Index, DateTime, func
from typing import Optional

Base = declarative_base()


class Catalog(Base):
    __tablename__ = 'catalogos'
    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    nome: Mapped[str] = mapped_column(String(200), nullable=False)
    ano: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    pdf_url: Mapped[str] = mapped_column(Text, nullable=False)
    empresa_nome: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)
    whatsapp_phone: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)
    politica: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    created_at: Mapped[str] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[str] = mapped_column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())


class CatalogProduct(Base):
    __tablename__ = 'catalogo_produtos'
    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    catalogo_id: Mapped[int] = mapped_column(ForeignKey('catalogos.id', ondelete='CASCADE'), nullable=False)
    pagina: Mapped[int] = mapped_column(Integer, nullable=False)
    ref: Mapped[str] = mapped_column(String(80), nullable=False)
    nome: Mapped[str] = mapped_column(String(255), nullable=False)
    qtd_multiplo: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    preco: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False, default=Decimal('0'))
    updated_at: Mapped[str] = mapped_column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    __table_args__ = (
        UniqueConstraint('catalogo_id', 'ref', name='uq_catalogo_produto_ref'),
        Index('ix_catalogo_produtos_pagina', 'catalogo_id', 'pagina'),
    )

__all__ = ["Base", "Catalog", "CatalogProduct"]
