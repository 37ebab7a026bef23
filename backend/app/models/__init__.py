"""
Modèles base de données SQLAlchemy
Projet: SODIPAS (Gestion grossiste fruits)

Import centralisé de tous les modèles pour la création du schéma.
"""

from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    """Classe de base de tous les modèles SQLAlchemy."""
    pass


from app.models.client import Client
from app.models.invoice import Invoice, InvoiceItem, Payment, PaymentAllocation
from app.models.crate import CrateMovement
from app.models.cash_register import ClosureEntry, DailyClosure
from app.models.truck import Stock, StockEntry, Truck, TruckArticle

__all__ = [
    "Base",
    "Client",
    "Invoice",
    "InvoiceItem",
    "Payment",
    "PaymentAllocation",
    "CrateMovement",
    "DailyClosure",
    "ClosureEntry",
    "Truck",
    "TruckArticle",
    "Stock",
    "StockEntry",
]
