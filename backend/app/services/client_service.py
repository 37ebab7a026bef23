"""
Service Layer pour l'entité Client
Projet: SODIPAS (Gestion grossiste fruits)

Définit la logique de gestion des comptes clients:
- Suppression logique (is_active)
- Unicité du téléphone parmi les clients actifs
- Filtre par statut de risque calculé
- Garde de version (instantané périmé → ConflictError)
"""

import logging
import uuid
from typing import Optional

from sqlalchemy import and_, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.database import commit_or_rollback
from app.core.exceptions import ConflictError, DuplicateError, NotFoundError
from app.models import Client
from app.schemas.client import ClientCreate, ClientStatus, ClientUpdate

logger = logging.getLogger(__name__)


def ensure_client_version(client: Client, expected_version: Optional[int]) -> None:
    """
    Rejette une écriture calculée sur un instantané périmé du client.

    Args:
        client: Client chargé dans la session courante
        expected_version: Version lue par l'appelant (None = pas de contrôle)

    Raises:
        ConflictError: La version a changé depuis la lecture
    """
    if expected_version is not None and client.version != expected_version:
        logger.warning(
            "Version périmée pour le client %s: attendue %s, actuelle %s",
            client.id, expected_version, client.version,
        )
        raise ConflictError(
            f"Le compte de {client.name} a été modifié entre-temps, rechargez et réessayez",
            error_code="STALE_SNAPSHOT",
        )


def status_condition(status: ClientStatus):
    """Traduit le statut calculé en condition SQL."""
    over_limit = or_(Client.is_blocked == True, Client.debt > Client.debt_limit)  # noqa: E712
    if status == ClientStatus.CRITICAL:
        return over_limit
    if status == ClientStatus.GOOD:
        return and_(~over_limit, Client.debt == 0)
    return and_(~over_limit, Client.debt > 0)


class ClientService:
    """
    Service de gestion des comptes clients.

    Fournit des méthodes asynchrones indépendantes de FastAPI.
    La dette et les cageots ne sont jamais modifiés ici: seuls les
    services du grand livre (factures, paiements, cageots) y touchent.
    """

    async def get_all(
        self,
        db: AsyncSession,
        page: int = 1,
        per_page: int = 20,
        search: Optional[str] = None,
        status: Optional[ClientStatus] = None,
        include_inactive: bool = False,
    ) -> tuple[list[Client], int]:
        """
        Liste paginée des clients.

        Args:
            db: Session base de données
            page: Numéro de page (1-based)
            per_page: Éléments par page
            search: Recherche sur nom, téléphone, email
            status: Filtre sur le statut calculé
            include_inactive: Inclut les clients supprimés

        Returns:
            Tuple (clients, total)
        """
        conditions = []

        if not include_inactive:
            conditions.append(Client.is_active == True)  # noqa: E712

        if search:
            search_term = f"%{search.strip()}%"
            conditions.append(
                or_(
                    Client.name.ilike(search_term),
                    Client.phone.ilike(search_term),
                    Client.email.ilike(search_term),
                )
            )

        if status is not None:
            conditions.append(status_condition(status))

        query = select(Client).order_by(Client.name.asc())
        if conditions:
            query = query.where(*conditions)

        offset = (page - 1) * per_page
        result = await db.execute(query.offset(offset).limit(per_page))
        clients = list(result.scalars().all())

        count_query = select(func.count()).select_from(Client)
        if conditions:
            count_query = count_query.where(*conditions)
        total = (await db.execute(count_query)).scalar() or 0

        logger.info(
            "Récupérés %s clients sur %s (page %s, statut=%s)",
            len(clients), total, page, status.value if status else "tous",
        )
        return clients, total

    async def get_by_id(
        self,
        db: AsyncSession,
        client_id: uuid.UUID,
        include_inactive: bool = False,
    ) -> Client:
        """
        Récupère un client par son ID.

        Raises:
            NotFoundError: Client inexistant ou supprimé
        """
        query = select(Client).where(Client.id == client_id)
        if not include_inactive:
            query = query.where(Client.is_active == True)  # noqa: E712

        client = (await db.execute(query)).scalar_one_or_none()
        if client is None:
            logger.warning("Client introuvable ou supprimé: %s", client_id)
            raise NotFoundError(f"Client {client_id} introuvable")
        return client

    async def create(
        self,
        db: AsyncSession,
        client_data: ClientCreate,
    ) -> Client:
        """
        Crée un client avec des soldes à zéro.

        Args:
            db: Session base de données
            client_data: Données du client

        Returns:
            Client créé

        Raises:
            DuplicateError: Téléphone déjà utilisé par un client actif
        """
        existing = await self._check_phone_exists(db, client_data.phone)
        if existing:
            logger.warning(
                "Création refusée, téléphone %s déjà utilisé par %s",
                client_data.phone, existing.id,
            )
            raise DuplicateError(f"Le numéro {client_data.phone} est déjà enregistré")

        data = client_data.model_dump()
        if data.get("debt_limit") is None:
            data["debt_limit"] = settings.default_debt_limit

        client = Client(**data, debt=0, cageots=0, is_blocked=False, is_active=True)
        db.add(client)
        await commit_or_rollback(db, "Création du client")

        logger.info("Client créé: %s - %s (%s)", client.id, client.name, client.phone)
        return client

    async def update(
        self,
        db: AsyncSession,
        client_id: uuid.UUID,
        client_data: ClientUpdate,
    ) -> Client:
        """
        Met à jour l'identité, la limite de dette ou le blocage d'un client.

        Raises:
            NotFoundError: Client inexistant
            ConflictError: Version périmée
            DuplicateError: Téléphone déjà utilisé
        """
        client = await self.get_by_id(db, client_id)
        update_data = client_data.model_dump(exclude_unset=True)
        ensure_client_version(client, update_data.pop("expected_version", None))

        new_phone = update_data.get("phone")
        if new_phone and new_phone != client.phone:
            existing = await self._check_phone_exists(db, new_phone, exclude_id=client_id)
            if existing:
                logger.warning(
                    "Mise à jour refusée, téléphone %s déjà utilisé par %s",
                    new_phone, existing.id,
                )
                raise DuplicateError(f"Le numéro {new_phone} est déjà enregistré")

        if update_data.get("is_blocked") is True and not client.is_blocked:
            logger.info("Client %s bloqué manuellement", client_id)

        for field, value in update_data.items():
            setattr(client, field, value)

        await commit_or_rollback(db, "Mise à jour du client")
        logger.info("Client mis à jour: %s - %s", client.id, client.name)
        return client

    async def delete(
        self,
        db: AsyncSession,
        client_id: uuid.UUID,
    ) -> None:
        """
        Suppression logique d'un client.

        Un client qui doit encore de l'argent ou des cageots reste actif.

        Raises:
            NotFoundError: Client inexistant
            ConflictError: Dette ou cageots non soldés
        """
        client = await self.get_by_id(db, client_id)

        if client.debt > 0 or client.cageots > 0:
            logger.warning(
                "Suppression refusée pour %s: dette=%s cageots=%s",
                client_id, client.debt, client.cageots,
            )
            raise ConflictError(
                f"Impossible de supprimer {client.name}: dette de {client.debt} F "
                f"et {client.cageots} cageots à régulariser"
            )

        client.is_active = False
        await commit_or_rollback(db, "Suppression du client")
        logger.info("Suppression logique du client: %s - %s", client.id, client.name)

    # ----------------------------------------------------------------
    # Méthodes privées
    # ----------------------------------------------------------------

    async def _check_phone_exists(
        self,
        db: AsyncSession,
        phone: str,
        exclude_id: Optional[uuid.UUID] = None,
    ) -> Optional[Client]:
        """Client actif portant déjà ce numéro, ou None."""
        query = select(Client).where(
            Client.phone == phone,
            Client.is_active == True,  # noqa: E712
        )
        if exclude_id:
            query = query.where(Client.id != exclude_id)
        result = await db.execute(query)
        return result.scalars().first()


__all__ = ["ClientService", "ensure_client_version", "status_condition"]
