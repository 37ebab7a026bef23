import uuid
from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Response
from fastapi.responses import HTMLResponse
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_db
from app.core.deps import CurrentActor, CurrentContext, ManagerActor
from app.core.exceptions import AuthorizationError
from app.models import DailyClosure
from app.schemas.cash_register import (
    ClosureCreate,
    ClosureRead,
    ClosureReport,
    ClosureSummary,
    TransactionKind,
    TransactionRead,
)
from app.schemas.token import Actor
from app.services.cash_register_service import CashRegisterService
from app.services.report_service import ReportService, generate_report, render_report_json

router = APIRouter(prefix="/cash-register", tags=["Clôture de caisse"])


def get_cash_register_service() -> CashRegisterService:
    return CashRegisterService()


def check_closure_access(closure: DailyClosure, actor: Actor) -> None:
    """Un caissier ne consulte que ses propres clôtures."""
    if not actor.is_manager and closure.cashier_id != actor.id:
        raise AuthorizationError("Cette clôture appartient à un autre caissier")


@router.get("/summary", response_model=ClosureSummary)
async def get_summary(
    ctx: CurrentContext,
    opening_balance: int = Query(0, ge=0),
    db: AsyncSession = Depends(get_db),
    service: CashRegisterService = Depends(get_cash_register_service),
):
    """Aperçu de la journée en cours (ou instantané si déjà clôturée)."""
    return await service.compute_summary(db, ctx, opening_balance=opening_balance)


@router.get("/transactions", response_model=List[TransactionRead])
async def get_transactions(
    ctx: CurrentContext,
    kind: Optional[TransactionKind] = Query(None),
    db: AsyncSession = Depends(get_db),
    service: CashRegisterService = Depends(get_cash_register_service),
):
    """Opérations de la journée, filtrables par type."""
    return await service.list_transactions(db, ctx, kind=kind)


@router.post("/close", response_model=ClosureRead)
async def close_day(
    data: ClosureCreate,
    ctx: CurrentContext,
    db: AsyncSession = Depends(get_db),
    service: CashRegisterService = Depends(get_cash_register_service),
):
    """Clôture la journée du caissier (confirmation obligatoire)."""
    closure = await service.close_day(db, ctx, data)
    return ClosureRead.model_validate(closure)


@router.get("/history", response_model=List[ClosureRead])
async def get_history(
    actor: CurrentActor,
    cashier_id: Optional[str] = Query(None),
    hangar: Optional[str] = Query(None),
    from_date: Optional[date] = Query(None),
    to_date: Optional[date] = Query(None),
    skip: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
    service: CashRegisterService = Depends(get_cash_register_service),
):
    """Historique des clôtures; un caissier ne voit que les siennes."""
    if not actor.is_manager:
        cashier_id = actor.id
    closures = await service.list_closures(
        db,
        cashier_id=cashier_id,
        hangar=hangar,
        from_date=from_date,
        to_date=to_date,
        skip=skip,
        limit=limit,
    )
    return [ClosureRead.model_validate(c) for c in closures]


@router.get("/{closure_id}", response_model=ClosureRead)
async def get_closure(
    closure_id: uuid.UUID,
    actor: CurrentActor,
    db: AsyncSession = Depends(get_db),
    service: CashRegisterService = Depends(get_cash_register_service),
):
    """Détail d'une clôture avec ses opérations figées."""
    closure = await service.get_closure(db, closure_id)
    check_closure_access(closure, actor)
    return ClosureRead.model_validate(closure)


@router.get("/{closure_id}/report", response_model=ClosureReport)
async def get_report(
    closure_id: uuid.UUID,
    actor: CurrentActor,
    db: AsyncSession = Depends(get_db),
    service: CashRegisterService = Depends(get_cash_register_service),
):
    """Rapport structuré de la clôture."""
    closure = await service.get_closure(db, closure_id)
    check_closure_access(closure, actor)
    return generate_report(closure)


@router.get("/{closure_id}/report.json")
async def export_report_json(
    closure_id: uuid.UUID,
    actor: CurrentActor,
    db: AsyncSession = Depends(get_db),
    service: CashRegisterService = Depends(get_cash_register_service),
):
    """Export JSON canonique, identique octet pour octet pour une même clôture."""
    closure = await service.get_closure(db, closure_id)
    check_closure_access(closure, actor)
    return Response(
        content=render_report_json(generate_report(closure)),
        media_type="application/json",
        headers={
            "Content-Disposition": (
                f'attachment; filename="cloture_{closure.hangar}_{closure.closure_date}.json"'
            )
        },
    )


@router.get("/{closure_id}/report.html", response_class=HTMLResponse)
async def export_report_html(
    closure_id: uuid.UUID,
    actor: CurrentActor,
    db: AsyncSession = Depends(get_db),
    service: CashRegisterService = Depends(get_cash_register_service),
):
    """Rapport HTML imprimable."""
    closure = await service.get_closure(db, closure_id)
    check_closure_access(closure, actor)
    return HTMLResponse(ReportService().render_html(closure))


@router.patch("/{closure_id}/validate", response_model=ClosureRead)
async def validate_closure(
    closure_id: uuid.UUID,
    manager: ManagerActor,
    db: AsyncSession = Depends(get_db),
    service: CashRegisterService = Depends(get_cash_register_service),
):
    """Validation d'une clôture par un gérant."""
    closure = await service.validate_closure(db, closure_id, manager)
    return ClosureRead.model_validate(closure)
