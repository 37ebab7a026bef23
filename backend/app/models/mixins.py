"""
Mixins SQLAlchemy pour les modèles
Projet: SODIPAS (Gestion grossiste fruits)

Mixins réutilisables ajoutant les colonnes communes aux modèles.
"""

import datetime
import uuid

from sqlalchemy import Boolean, Date, DateTime, String, Uuid
from sqlalchemy import event
from sqlalchemy.orm import Mapped, mapped_column, Session


def utcnow() -> datetime.datetime:
    """Horodatage courant en UTC."""
    return datetime.datetime.now(datetime.timezone.utc)


def as_utc(value: datetime.datetime) -> datetime.datetime:
    """Rattache UTC aux horodatages relus sans fuseau (SQLite)."""
    if value.tzinfo is None:
        return value.replace(tzinfo=datetime.timezone.utc)
    return value


class SoftDeleteMixin:
    """
    Suppression logique.

    is_active à False signifie que l'enregistrement est "supprimé"
    sans être retiré physiquement (le grand livre reste intact).
    """

    is_active: Mapped[bool] = mapped_column(
        Boolean,
        default=True,
        nullable=False,
        doc="False = supprimé, True = actif",
    )


class TimestampMixin:
    """
    Horodatage automatique création / mise à jour.

    Les valeurs sont calculées côté Python pour rester lisibles
    sans rechargement après le commit.
    """

    created_at: Mapped[datetime.datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        nullable=False,
        doc="Date/heure de création",
    )

    updated_at: Mapped[datetime.datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        nullable=False,
        doc="Date/heure de dernière mise à jour",
    )


class LedgerAttributionMixin:
    """
    Attribution d'une écriture du grand livre à un caissier, un hangar
    et une journée d'exploitation. Sert de clé pour la clôture journalière.
    """

    cashier_id: Mapped[str] = mapped_column(
        String(64),
        nullable=False,
        index=True,
        doc="Identifiant du caissier",
    )

    cashier_name: Mapped[str] = mapped_column(
        String(150),
        nullable=False,
        doc="Nom du caissier au moment de l'écriture",
    )

    hangar: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
        index=True,
        doc="Hangar de rattachement",
    )

    operating_date: Mapped[datetime.date] = mapped_column(
        Date,
        nullable=False,
        index=True,
        doc="Journée d'exploitation",
    )


class UUIDMixin:
    """Clé primaire UUID générée à l'insertion."""

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4,
        doc="Clé primaire UUID",
    )


# ------------------------------------------------------------
# Event Listeners
# ------------------------------------------------------------
@event.listens_for(Session, "before_flush")
def update_timestamp(session: Session, flush_context, instances) -> None:
    """
    Met à jour updated_at des objets modifiés avant chaque flush.

    Args:
        session: Session SQLAlchemy
        flush_context: Contexte du flush
        instances: Non utilisé
    """
    now = utcnow()

    for obj in session.dirty:
        if hasattr(obj, "updated_at") and session.is_modified(obj, include_collections=False):
            obj.updated_at = now
