"""
Router FastAPI pour les cageots
Projet: SODIPAS (Gestion grossiste fruits)
"""

import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_db
from app.core.deps import CurrentActor, CurrentContext
from app.schemas.crate import (
    CrateDirection,
    CrateMovementCreate,
    CrateMovementRead,
    CratePreview,
)
from app.services.client_service import ClientService
from app.services.crate_service import CrateService

router = APIRouter(prefix="/cageots", tags=["Cageots"])


def get_crate_service() -> CrateService:
    return CrateService()


@router.get("/preview", response_model=CratePreview)
async def preview_movement(
    actor: CurrentActor,
    client_id: uuid.UUID = Query(...),
    direction: CrateDirection = Query(...),
    quantity: int = Query(...),
    db: AsyncSession = Depends(get_db),
    service: CrateService = Depends(get_crate_service),
):
    """Solde résultant d'un mouvement, affiché avant confirmation."""
    client = await ClientService().get_by_id(db, client_id)
    return service.preview_movement(client, direction, quantity)


@router.post("/", response_model=CrateMovementRead, status_code=status.HTTP_201_CREATED)
async def apply_movement(
    data: CrateMovementCreate,
    ctx: CurrentContext,
    db: AsyncSession = Depends(get_db),
    service: CrateService = Depends(get_crate_service),
):
    """Ajoute ou retire des cageots sur le compte d'un client."""
    movement = await service.apply_movement(db=db, ctx=ctx, data=data)
    return CrateMovementRead.model_validate(movement)


@router.get("/", response_model=list[CrateMovementRead])
async def get_movements(
    actor: CurrentActor,
    client_id: Optional[uuid.UUID] = Query(None),
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=500),
    db: AsyncSession = Depends(get_db),
    service: CrateService = Depends(get_crate_service),
):
    """Historique des mouvements de cageots."""
    movements = await service.get_all(db=db, client_id=client_id, skip=skip, limit=limit)
    return [CrateMovementRead.model_validate(m) for m in movements]
