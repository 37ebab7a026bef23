"""
Service Layer pour les cageots
Projet: SODIPAS (Gestion grossiste fruits)

Ajout et retrait de cageots sur le compte d'un client, avec historique
immuable des mouvements.
"""

import logging
import uuid
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import commit_or_rollback
from app.core.exceptions import BusinessValidationError
from app.models import Client, CrateMovement
from app.schemas.crate import CRATE_REASONS, CrateDirection, CrateMovementCreate, CratePreview
from app.schemas.token import LedgerContext
from app.services.cash_register_service import CashRegisterService, resolve_hangar
from app.services.client_service import ClientService, ensure_client_version

logger = logging.getLogger(__name__)


def resulting_balance(current: int, direction: CrateDirection, quantity: int) -> int:
    """Solde après le mouvement (peut être négatif: à refuser)."""
    if direction == CrateDirection.ADD:
        return current + quantity
    return current - quantity


def check_movement(current: int, direction: CrateDirection, quantity: int) -> None:
    """
    Vérifie qu'un mouvement est applicable au solde courant.

    Raises:
        BusinessValidationError: Quantité invalide ou retrait supérieur au solde
    """
    if quantity <= 0:
        raise BusinessValidationError("Veuillez entrer une quantité valide")
    if direction == CrateDirection.REMOVE and quantity > current:
        raise BusinessValidationError(
            f"Impossible de retirer plus de cageots que le solde : {current} disponibles",
            error_code="INSUFFICIENT_CAGEOTS",
            extra={"available": current, "requested": quantity},
        )


class CrateService:
    """Service du grand livre des cageots."""

    def __init__(
        self,
        cash_register: Optional[CashRegisterService] = None,
        clients: Optional[ClientService] = None,
    ) -> None:
        self.cash_register = cash_register or CashRegisterService()
        self.clients = clients or ClientService()

    def preview_movement(
        self,
        client: Client,
        direction: CrateDirection,
        quantity: int,
    ) -> CratePreview:
        """
        Solde résultant d'un mouvement, sans rien modifier.

        Args:
            client: Client concerné
            direction: add ou remove
            quantity: Nombre de cageots

        Returns:
            CratePreview avec le solde courant, le solde résultant et
            le motif de refus éventuel
        """
        message = None
        try:
            check_movement(client.cageots, direction, quantity)
        except BusinessValidationError as e:
            message = e.detail

        return CratePreview(
            client_id=client.id,
            direction=direction,
            quantity=quantity,
            current_balance=client.cageots,
            resulting_balance=resulting_balance(client.cageots, direction, quantity),
            allowed=message is None,
            message=message,
        )

    async def apply_movement(
        self,
        db: AsyncSession,
        ctx: LedgerContext,
        data: CrateMovementCreate,
        hangar: Optional[str] = None,
    ) -> CrateMovement:
        """
        Applique un mouvement de cageots.

        Args:
            db: Session base de données
            ctx: Contexte d'écriture
            data: Client, sens, quantité, motif
            hangar: Hangar demandé

        Returns:
            Mouvement enregistré (solde avant/après)

        Raises:
            BusinessValidationError: Quantité, motif ou solde insuffisant
            NotFoundError: Client inexistant
            ConflictError: Journée clôturée ou version périmée
        """
        reason = data.reason.strip().lower()
        if not reason:
            raise BusinessValidationError("Veuillez préciser la raison")
        if reason not in CRATE_REASONS[data.direction.value]:
            raise BusinessValidationError(
                f"Motif '{data.reason}' invalide pour un {'ajout' if data.direction == CrateDirection.ADD else 'retrait'}: "
                f"{', '.join(sorted(CRATE_REASONS[data.direction.value]))}"
            )
        if data.quantity <= 0:
            raise BusinessValidationError("Veuillez entrer une quantité valide")
        hangar = resolve_hangar(ctx, hangar)

        client = await self.clients.get_by_id(db, data.client_id)
        ensure_client_version(client, data.expected_client_version)
        try:
            check_movement(client.cageots, data.direction, data.quantity)
        except BusinessValidationError:
            logger.warning(
                "Retrait de %s cageots refusé pour %s (solde %s)",
                data.quantity, client.id, client.cageots,
            )
            raise
        await self.cash_register.ensure_day_open(db, ctx, hangar)

        balance_before = client.cageots
        client.cageots = resulting_balance(balance_before, data.direction, data.quantity)

        movement = CrateMovement(
            client=client,
            direction=data.direction.value,
            quantity=data.quantity,
            reason=reason,
            balance_before=balance_before,
            balance_after=client.cageots,
            cashier_id=ctx.actor.id,
            cashier_name=ctx.actor.name,
            hangar=hangar,
            operating_date=ctx.operating_date,
        )
        db.add(movement)
        await commit_or_rollback(db, "Mouvement de cageots")

        logger.info(
            "Cageots %s %s pour %s (%s): %s -> %s",
            data.direction.value, data.quantity, client.name, reason,
            balance_before, client.cageots,
        )
        return movement

    async def get_all(
        self,
        db: AsyncSession,
        client_id: Optional[uuid.UUID] = None,
        skip: int = 0,
        limit: int = 100,
    ) -> list[CrateMovement]:
        """Historique des mouvements, les plus récents en premier."""
        stmt = select(CrateMovement).order_by(CrateMovement.created_at.desc())
        if client_id:
            stmt = stmt.where(CrateMovement.client_id == client_id)
        result = await db.execute(stmt.offset(skip).limit(limit))
        return list(result.scalars().all())


__all__ = ["CrateService", "check_movement", "resulting_balance"]
