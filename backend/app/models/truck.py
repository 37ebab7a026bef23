"""
Modèles SQLAlchemy pour l'arrivage des camions et le stock des hangars
Projet: SODIPAS (Gestion grossiste fruits)

Contient:
- Truck: Camion enregistré à l'arrivée (statut registered → unloaded)
- TruckArticle: Articles déclarés sur le manifeste
- Stock: Agrégat par hangar et article
- StockEntry: Entrée de stock (append-only) issue d'un déchargement
"""

from __future__ import annotations

import datetime
import uuid
from typing import List, Optional

from sqlalchemy import (
    BigInteger,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    UniqueConstraint,
    Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.models import Base
from app.models.mixins import TimestampMixin, UUIDMixin


def stock_level(quantity: int, threshold: int) -> str:
    """
    Niveau d'un stock par rapport à son seuil d'alerte.

    - 'critical': quantité ≤ seuil
    - 'warning': quantité ≤ 1,5 × seuil
    - 'good': au-delà
    """
    if quantity <= threshold:
        return "critical"
    if quantity * 2 <= threshold * 3:
        return "warning"
    return "good"


class Truck(Base, UUIDMixin, TimestampMixin):
    """
    Camion de marchandises arrivant dans un hangar.

    Attributes:
        origin: Provenance
        driver: Nom du chauffeur
        phone: Téléphone du chauffeur
        hangar: Hangar de destination
        declared_value: Valeur saisie à l'enregistrement (facultative)
        value: Valeur retenue (déclarée ou calculée sur le manifeste)
        status: 'registered' | 'unloaded' (terminal)
        registered_by / registered_at: Enregistrement
        unloaded_by / unloaded_at: Déchargement
    """

    __tablename__ = "trucks"

    origin: Mapped[str] = mapped_column(String(100), nullable=False)
    driver: Mapped[str] = mapped_column(String(150), nullable=False)
    phone: Mapped[str] = mapped_column(String(20), nullable=False)
    hangar: Mapped[str] = mapped_column(String(100), nullable=False)

    declared_value: Mapped[Optional[int]] = mapped_column(BigInteger, nullable=True)
    value: Mapped[int] = mapped_column(BigInteger, nullable=False)

    status: Mapped[str] = mapped_column(String(20), nullable=False, default="registered")

    registered_by: Mapped[str] = mapped_column(String(150), nullable=False)
    registered_at: Mapped[datetime.datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    unloaded_by: Mapped[Optional[str]] = mapped_column(String(150), nullable=True)
    unloaded_at: Mapped[Optional[datetime.datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    articles: Mapped[List["TruckArticle"]] = relationship(
        "TruckArticle",
        back_populates="truck",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="TruckArticle.line_number",
    )

    stock_entries: Mapped[List["StockEntry"]] = relationship(
        "StockEntry",
        back_populates="truck",
        lazy="selectin",
        order_by="StockEntry.line_number",
    )

    __table_args__ = (
        Index("ix_trucks_hangar_status", "hangar", "status"),
        CheckConstraint("status IN ('registered', 'unloaded')", name="ck_trucks_status"),
    )

    def __repr__(self) -> str:
        return f"<Truck(id={self.id}, driver={self.driver}, status={self.status})>"


class TruckArticle(Base, UUIDMixin):
    """Article déclaré sur le manifeste d'un camion."""

    __tablename__ = "truck_articles"

    truck_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("trucks.id", ondelete="CASCADE"),
        nullable=False,
    )
    line_number: Mapped[int] = mapped_column(Integer, nullable=False)
    name: Mapped[str] = mapped_column(String(150), nullable=False)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    unit: Mapped[str] = mapped_column(String(20), nullable=False, default="cageots")
    unit_price: Mapped[int] = mapped_column(BigInteger, nullable=False)

    truck: Mapped["Truck"] = relationship("Truck", back_populates="articles")

    @property
    def total_value(self) -> int:
        """Valeur déclarée de la ligne."""
        return self.quantity * self.unit_price

    __table_args__ = (
        CheckConstraint("quantity > 0", name="ck_truck_articles_quantity_positive"),
        CheckConstraint("unit_price > 0", name="ck_truck_articles_unit_price_positive"),
    )


class Stock(Base, UUIDMixin, TimestampMixin):
    """
    Stock agrégé d'un article dans un hangar.

    Modifié uniquement par le déchargement d'un camion enregistré.
    """

    __tablename__ = "stocks"

    hangar: Mapped[str] = mapped_column(String(100), nullable=False)
    article: Mapped[str] = mapped_column(String(150), nullable=False)
    unit: Mapped[str] = mapped_column(String(20), nullable=False, default="cageots")
    quantity: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    value: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    threshold: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    @property
    def level(self) -> str:
        """Niveau calculé: 'critical' | 'warning' | 'good'."""
        return stock_level(self.quantity, self.threshold)

    __table_args__ = (
        UniqueConstraint("hangar", "article", name="uq_stocks_hangar_article"),
        CheckConstraint("quantity >= 0", name="ck_stocks_quantity_positive"),
    )

    def __repr__(self) -> str:
        return f"<Stock(hangar={self.hangar}, article={self.article}, quantity={self.quantity})>"


class StockEntry(Base, UUIDMixin, TimestampMixin):
    """
    Entrée de stock issue du déchargement d'un camion.

    Append-only: attribuée à un camion et un hangar précis.
    """

    __tablename__ = "stock_entries"

    truck_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("trucks.id", ondelete="RESTRICT"),
        nullable=False,
    )
    stock_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("stocks.id", ondelete="RESTRICT"),
        nullable=False,
    )
    line_number: Mapped[int] = mapped_column(Integer, nullable=False)
    hangar: Mapped[str] = mapped_column(String(100), nullable=False)
    article: Mapped[str] = mapped_column(String(150), nullable=False)
    unit: Mapped[str] = mapped_column(String(20), nullable=False)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    value: Mapped[int] = mapped_column(BigInteger, nullable=False)
    operator: Mapped[str] = mapped_column(String(150), nullable=False)

    truck: Mapped["Truck"] = relationship("Truck", back_populates="stock_entries")
    stock: Mapped["Stock"] = relationship("Stock", lazy="selectin")

    __table_args__ = (
        Index("ix_stock_entries_hangar_article", "hangar", "article"),
        CheckConstraint("quantity > 0", name="ck_stock_entries_quantity_positive"),
    )
