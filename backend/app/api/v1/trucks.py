"""
Router FastAPI pour les camions et le stock
Projet: SODIPAS (Gestion grossiste fruits)

Définit les endpoints d'arrivage, de déchargement et de consultation du stock.
"""

import logging
import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_db
from app.core.deps import CurrentActor
from app.schemas.truck import (
    StockEntryRead,
    StockLevel,
    StockRead,
    TruckCreate,
    TruckRead,
    TruckStatus,
    TruckUnload,
)
from app.services.truck_service import TruckService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/trucks", tags=["Camions"])
stocks_router = APIRouter(prefix="/stocks", tags=["Stock"])


def get_truck_service() -> TruckService:
    """Dependency: instance du TruckService."""
    return TruckService()


# -------------------------------------------------------------------
# Camions
# -------------------------------------------------------------------

@router.post(
    "/",
    name="camion_enregistrer",
    summary="Enregistrer un camion",
    response_model=TruckRead,
    status_code=status.HTTP_201_CREATED,
)
async def register_truck(
    data: TruckCreate,
    actor: CurrentActor,
    db: AsyncSession = Depends(get_db),
    service: TruckService = Depends(get_truck_service),
) -> TruckRead:
    """
    Enregistre un camion et son manifeste.

    Raises:
        BusinessValidationError: Champ obligatoire vide ou aucun article valide
    """
    truck = await service.register_truck(db=db, actor=actor, data=data)
    return TruckRead.model_validate(truck)


@router.post(
    "/{truck_id}/unload",
    name="camion_decharger",
    summary="Décharger un camion",
    response_model=TruckRead,
    status_code=status.HTTP_200_OK,
)
async def unload_truck(
    truck_id: uuid.UUID,
    data: TruckUnload,
    actor: CurrentActor,
    db: AsyncSession = Depends(get_db),
    service: TruckService = Depends(get_truck_service),
) -> TruckRead:
    """
    Décharge un camion enregistré et alimente le stock de son hangar.

    Raises:
        NotFoundError: Camion inexistant
        ConflictError: Camion déjà déchargé
        BusinessValidationError: Aucune quantité ou article hors manifeste
    """
    truck = await service.unload_truck(db=db, actor=actor, truck_id=truck_id, data=data)
    return TruckRead.model_validate(truck)


@router.get(
    "/",
    name="camions_liste",
    summary="Liste des camions",
    response_model=list[TruckRead],
)
async def get_trucks(
    actor: CurrentActor,
    truck_status: Optional[TruckStatus] = Query(None, alias="status"),
    hangar: Optional[str] = Query(None),
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=500),
    db: AsyncSession = Depends(get_db),
    service: TruckService = Depends(get_truck_service),
) -> list[TruckRead]:
    trucks = await service.get_all(db=db, status=truck_status, hangar=hangar, skip=skip, limit=limit)
    return [TruckRead.model_validate(t) for t in trucks]


@router.get(
    "/{truck_id}",
    name="camion_detail",
    summary="Détail camion",
    response_model=TruckRead,
)
async def get_truck(
    truck_id: uuid.UUID,
    actor: CurrentActor,
    db: AsyncSession = Depends(get_db),
    service: TruckService = Depends(get_truck_service),
) -> TruckRead:
    truck = await service.get_by_id(db=db, truck_id=truck_id)
    return TruckRead.model_validate(truck)


# -------------------------------------------------------------------
# Stock
# -------------------------------------------------------------------

@stocks_router.get(
    "/",
    name="stocks_liste",
    summary="Stock par hangar",
    response_model=list[StockRead],
)
async def get_stocks(
    actor: CurrentActor,
    hangar: Optional[str] = Query(None),
    level: Optional[StockLevel] = Query(None, description="critical, warning ou good"),
    db: AsyncSession = Depends(get_db),
    service: TruckService = Depends(get_truck_service),
) -> list[StockRead]:
    stocks = await service.list_stocks(db=db, hangar=hangar, level=level)
    return [StockRead.model_validate(s) for s in stocks]


@stocks_router.get(
    "/entries",
    name="stocks_entrees",
    summary="Entrées de stock",
    response_model=list[StockEntryRead],
)
async def get_stock_entries(
    actor: CurrentActor,
    hangar: Optional[str] = Query(None),
    article: Optional[str] = Query(None),
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=500),
    db: AsyncSession = Depends(get_db),
    service: TruckService = Depends(get_truck_service),
) -> list[StockEntryRead]:
    entries = await service.list_stock_entries(
        db=db, hangar=hangar, article=article, skip=skip, limit=limit
    )
    return [StockEntryRead.model_validate(e) for e in entries]
