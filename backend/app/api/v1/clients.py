"""
Router FastAPI pour l'entité Client
Projet: SODIPAS (Gestion grossiste fruits)

Définit les endpoints de gestion des comptes clients.
"""

import logging
import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_db
from app.core.deps import CurrentActor
from app.schemas.client import (
    ClientCreate,
    ClientList,
    ClientRead,
    ClientStatus,
    ClientUpdate,
)
from app.services.client_service import ClientService

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/clients",
    tags=["Clients"],
)


# -------------------------------------------------------------------
# Dependency Injection
# -------------------------------------------------------------------

def get_client_service() -> ClientService:
    """
    Dependency: instance du ClientService.

    Évite les instances globales et facilite les tests.
    """
    return ClientService()


# -------------------------------------------------------------------
# Endpoints
# -------------------------------------------------------------------

@router.get(
    "/",
    name="clients_liste",
    summary="Liste des clients",
    description="Liste paginée des clients avec recherche et filtre de statut.",
    response_model=ClientList,
    status_code=status.HTTP_200_OK,
)
async def get_clients(
    actor: CurrentActor,
    page: int = Query(1, ge=1, description="Numéro de page"),
    per_page: int = Query(20, ge=1, le=100, description="Éléments par page"),
    search: Optional[str] = Query(None, description="Nom, téléphone ou email"),
    client_status: Optional[ClientStatus] = Query(None, alias="status", description="Statut de risque"),
    include_inactive: bool = Query(False, description="Inclure les clients supprimés"),
    db: AsyncSession = Depends(get_db),
    service: ClientService = Depends(get_client_service),
) -> ClientList:
    """
    Liste paginée des clients.

    Par défaut seuls les clients actifs sont renvoyés.
    """
    clients, total = await service.get_all(
        db=db,
        page=page,
        per_page=per_page,
        search=search,
        status=client_status,
        include_inactive=include_inactive,
    )

    return ClientList(
        items=[ClientRead.model_validate(c) for c in clients],
        total=total,
        page=page,
        per_page=per_page,
    )


@router.get(
    "/{client_id}",
    name="client_detail",
    summary="Détail client",
    response_model=ClientRead,
    status_code=status.HTTP_200_OK,
)
async def get_client(
    client_id: uuid.UUID,
    actor: CurrentActor,
    db: AsyncSession = Depends(get_db),
    service: ClientService = Depends(get_client_service),
) -> ClientRead:
    """
    Détail d'un client avec ses soldes et son statut.

    Raises:
        NotFoundError: Client inexistant
    """
    client = await service.get_by_id(db=db, client_id=client_id)
    return ClientRead.model_validate(client)


@router.post(
    "/",
    name="client_creer",
    summary="Créer un client",
    response_model=ClientRead,
    status_code=status.HTTP_201_CREATED,
)
async def create_client(
    client_data: ClientCreate,
    actor: CurrentActor,
    db: AsyncSession = Depends(get_db),
    service: ClientService = Depends(get_client_service),
) -> ClientRead:
    """
    Crée un client avec dette et cageots à zéro.

    Raises:
        DuplicateError: Téléphone déjà enregistré
    """
    client = await service.create(db=db, client_data=client_data)
    logger.info("Client %s créé par %s", client.id, actor.id)
    return ClientRead.model_validate(client)


@router.patch(
    "/{client_id}",
    name="client_modifier",
    summary="Modifier un client",
    response_model=ClientRead,
    status_code=status.HTTP_200_OK,
)
async def update_client(
    client_id: uuid.UUID,
    client_data: ClientUpdate,
    actor: CurrentActor,
    db: AsyncSession = Depends(get_db),
    service: ClientService = Depends(get_client_service),
) -> ClientRead:
    """
    Mise à jour partielle (identité, limite de dette, blocage).

    Raises:
        NotFoundError: Client inexistant
        ConflictError: Version périmée
        DuplicateError: Téléphone déjà enregistré
    """
    client = await service.update(db=db, client_id=client_id, client_data=client_data)
    return ClientRead.model_validate(client)


@router.delete(
    "/{client_id}",
    name="client_supprimer",
    summary="Supprimer un client",
    status_code=status.HTTP_204_NO_CONTENT,
)
async def delete_client(
    client_id: uuid.UUID,
    actor: CurrentActor,
    db: AsyncSession = Depends(get_db),
    service: ClientService = Depends(get_client_service),
) -> None:
    """
    Suppression logique d'un client soldé.

    Raises:
        NotFoundError: Client inexistant
        ConflictError: Dette ou cageots non soldés
    """
    await service.delete(db=db, client_id=client_id)
    logger.info("Client %s supprimé par %s", client_id, actor.id)
