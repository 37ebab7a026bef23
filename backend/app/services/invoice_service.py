"""
Service Layer pour la facturation
Projet: SODIPAS (Gestion grossiste fruits)

Création des factures clients (lignes, total figé, acompte, dette),
numérotation progressive annuelle et consultation.
"""

import datetime
import logging
import uuid
from typing import Optional

from sqlalchemy import select, text
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.database import commit_or_rollback
from app.core.exceptions import BusinessValidationError, ConflictError, NotFoundError
from app.data.price_list import get_price_by_article
from app.models import Invoice, InvoiceItem, Payment, PaymentAllocation
from app.schemas.invoice import InvoiceCreate, InvoiceItemCreate, InvoiceStatus, InvoiceType
from app.schemas.token import LedgerContext
from app.services.cash_register_service import CashRegisterService, resolve_hangar
from app.services.client_service import ClientService, ensure_client_version

logger = logging.getLogger(__name__)


def resolve_items(items: list[InvoiceItemCreate]) -> list[InvoiceItem]:
    """
    Lignes valides de la facture, numérotées à partir de 1.

    Les lignes sans article ou sans quantité sont écartées. Un prix absent
    est repris de la grille tarifaire.

    Raises:
        BusinessValidationError: Aucune ligne valide, ou prix introuvable
    """
    valid = [item for item in items if item.article and item.quantity > 0]
    if not valid:
        raise BusinessValidationError("Veuillez ajouter au moins un article")

    lines = []
    for line_number, item in enumerate(valid, start=1):
        unit_price = item.unit_price or get_price_by_article(item.article)
        if not unit_price:
            raise BusinessValidationError(
                f"Prix introuvable pour l'article '{item.article}', veuillez le saisir"
            )
        lines.append(
            InvoiceItem(
                line_number=line_number,
                article=item.article,
                quantity=item.quantity,
                unit_price=unit_price,
                cageots=item.cageots,
            )
        )
    return lines


def initial_paid_amount(
    invoice_type: InvoiceType,
    amount: int,
    initial_payment: Optional[int],
) -> int:
    """
    Montant encaissé à la création selon le type de facture.

    Raises:
        BusinessValidationError: Acompte absent ou hors de ]0, montant[
    """
    if invoice_type == InvoiceType.PAID:
        return amount
    if invoice_type == InvoiceType.PARTIAL:
        if not initial_payment or initial_payment <= 0:
            raise BusinessValidationError("Veuillez saisir le montant de l'acompte")
        if initial_payment >= amount:
            raise BusinessValidationError(
                f"L'acompte ({initial_payment} F) doit être inférieur au total ({amount} F)"
            )
        return initial_payment
    return 0


class InvoiceService:
    """
    Service de gestion des factures.

    Implémente:
    - Résolution des prix depuis la grille tarifaire
    - Total figé à la création
    - Encaissement initial enregistré comme paiement de la journée
    - Numérotation progressive annuelle
    """

    def __init__(
        self,
        cash_register: Optional[CashRegisterService] = None,
        clients: Optional[ClientService] = None,
    ) -> None:
        self.cash_register = cash_register or CashRegisterService()
        self.clients = clients or ClientService()

    async def create_invoice(
        self,
        db: AsyncSession,
        ctx: LedgerContext,
        data: InvoiceCreate,
    ) -> Invoice:
        """
        Crée une facture et met à jour la dette du client.

        Steps:
        1. Vérifie hangar, lignes, acompte et échéance (aucune écriture)
        2. Charge le client et contrôle sa version
        3. Vérifie que la journée est ouverte
        4. Numérote la facture et augmente la dette de amount - paid_amount
        5. Enregistre l'encaissement initial éventuel comme paiement

        Args:
            db: Session base de données
            ctx: Contexte d'écriture (caissier, hangar, journée)
            data: Données de la facture

        Returns:
            Facture créée

        Raises:
            BusinessValidationError: Hangar absent, aucune ligne valide, acompte ou échéance manquants
            NotFoundError: Client inexistant
            ConflictError: Journée clôturée ou version client périmée
        """
        hangar = resolve_hangar(ctx, data.hangar)
        items = resolve_items(data.items)
        amount = sum(item.subtotal for item in items)
        paid_amount = initial_paid_amount(data.invoice_type, amount, data.initial_payment)

        if paid_amount < amount and data.due_date is None:
            raise BusinessValidationError("Veuillez sélectionner une date limite")

        client = await self.clients.get_by_id(db, data.client_id)
        ensure_client_version(client, data.expected_client_version)
        await self.cash_register.ensure_day_open(db, ctx, hangar)

        number = await self._generate_invoice_number(db, ctx.operating_date)
        attribution = {
            "cashier_id": ctx.actor.id,
            "cashier_name": ctx.actor.name,
            "hangar": hangar,
            "operating_date": ctx.operating_date,
        }

        invoice = Invoice(
            number=number,
            client=client,
            due_date=data.due_date,
            responsible_person=data.responsible_person,
            amount=amount,
            paid_amount=paid_amount,
            notes=data.notes,
            items=items,
            allocations=[],
            **attribution,
        )
        db.add(invoice)
        client.debt += amount - paid_amount

        if paid_amount > 0:
            payment = Payment(
                client=client,
                amount=paid_amount,
                method=data.payment_method.value,
                reference=number,
                notes=f"Encaissement à la création de la facture {number}",
                allocations=[
                    PaymentAllocation(invoice=invoice, position=1, amount=paid_amount)
                ],
                **attribution,
            )
            db.add(payment)

        await commit_or_rollback(db, "Création de la facture")

        logger.info(
            "Facture %s créée pour %s: %s F (payé %s F, %s), dette client %s F",
            number, client.name, amount, paid_amount, data.invoice_type.value, client.debt,
        )
        return invoice

    async def get_by_id(
        self,
        db: AsyncSession,
        invoice_id: uuid.UUID,
    ) -> Invoice:
        """
        Récupère une facture avec ses lignes.

        Raises:
            NotFoundError: Facture inexistante
        """
        invoice = await db.get(Invoice, invoice_id)
        if invoice is None:
            raise NotFoundError(f"Facture {invoice_id} introuvable")
        return invoice

    async def get_all(
        self,
        db: AsyncSession,
        client_id: Optional[uuid.UUID] = None,
        status: Optional[InvoiceStatus] = None,
        hangar: Optional[str] = None,
        skip: int = 0,
        limit: int = 100,
    ) -> list[Invoice]:
        """
        Liste les factures, les plus récentes en premier.

        Args:
            db: Session base de données
            client_id: Filtre client
            status: Filtre sur le statut calculé
            hangar: Filtre hangar
        """
        stmt = select(Invoice).order_by(Invoice.created_at.desc(), Invoice.number.desc())
        if client_id:
            stmt = stmt.where(Invoice.client_id == client_id)
        if hangar:
            stmt = stmt.where(Invoice.hangar == hangar)
        if status == InvoiceStatus.PAID:
            stmt = stmt.where(Invoice.paid_amount >= Invoice.amount)
        elif status == InvoiceStatus.PARTIAL:
            stmt = stmt.where(Invoice.paid_amount > 0, Invoice.paid_amount < Invoice.amount)
        elif status == InvoiceStatus.UNPAID:
            stmt = stmt.where(Invoice.paid_amount == 0)

        result = await db.execute(stmt.offset(skip).limit(limit))
        return list(result.scalars().all())

    async def _generate_invoice_number(
        self,
        db: AsyncSession,
        operating_date: datetime.date,
    ) -> str:
        """
        Génère le numéro progressif annuel.

        Format: INV-YYYY-NNNN (ex. INV-2024-0001)

        Sous PostgreSQL un verrou consultatif sérialise la numérotation
        de l'année; l'unicité du numéro reste garantie en base.

        Raises:
            ConflictError: Limite de 9999 factures atteinte pour l'année
        """
        year = operating_date.year
        year_prefix = f"{settings.invoice_number_prefix}-{year}-"

        if db.get_bind().dialect.name == "postgresql":
            await db.execute(text("SELECT pg_advisory_xact_lock(:lock_key)"), {"lock_key": year})

        stmt = (
            select(Invoice.number)
            .where(Invoice.number.like(f"{year_prefix}%"))
            .order_by(Invoice.number.desc())
            .limit(1)
        )
        last_number = (await db.execute(stmt)).scalar_one_or_none()

        next_number = int(last_number.rsplit("-", 1)[1]) + 1 if last_number else 1
        if next_number > 9999:
            raise ConflictError(f"Limite de numérotation des factures atteinte pour {year}")

        return f"{year_prefix}{next_number:04d}"


__all__ = ["InvoiceService", "resolve_items", "initial_paid_amount"]
