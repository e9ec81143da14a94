from __future__ import annotations
from decimal import Decimal
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import Integer, String, Text, Numeric, ForeignKey, UniqueConstraint, DateTime, func
from typing import Optional

from .catalog import Base


class Order(Base):
    __tablename__ = 'pedidos'
    STATUS_OPEN = 'aberto'
    # Header fields a buyer may change after creation
    MUTABLE_FIELDS = ('cliente_nome', 'cliente_contato', 'observacao', 'status')

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    catalogo_id: Mapped[int] = mapped_column(ForeignKey('catalogos.id'), nullable=False, index=True)
    cliente_nome: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)
    cliente_contato: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)
    observacao: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    status: Mapped[str] = mapped_column(String(32), nullable=False, default=STATUS_OPEN)
    created_at: Mapped[str] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[str] = mapped_column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())


class OrderLine(Base):
    __tablename__ = 'pedido_itens'
    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    pedido_id: Mapped[str] = mapped_column(ForeignKey('pedidos.id', ondelete='CASCADE'), nullable=False, index=True)
    ref: Mapped[str] = mapped_column(String(80), nullable=False)
    nome: Mapped[str] = mapped_column(String(255), nullable=False, default='')
    pagina: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    qtd: Mapped[int] = mapped_column(Integer, nullable=False)
    # Snapshots taken when the line was written; they do not follow later catalog edits
    qtd_multiplo: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    preco: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False, default=Decimal('0'))
    updated_at: Mapped[str] = mapped_column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    __table_args__ = (UniqueConstraint('pedido_id', 'ref', name='uq_pedido_item_ref'),)

__all__ = ["Order", "OrderLine"]
