"""
API v1 Routes
Projet: SODIPAS (Gestion grossiste fruits)

Router version 1 de l'API.
"""

from fastapi import APIRouter

from app.api.v1 import cageots, cash_register, clients, invoices, trucks

# Router agrégé pour v1
api_v1_router = APIRouter(prefix="/api/v1")

# Inclusion des routers des modules
api_v1_router.include_router(clients.router)
api_v1_router.include_router(invoices.router)
api_v1_router.include_router(invoices.payments_router)
api_v1_router.include_router(cageots.router)
api_v1_router.include_router(cash_register.router)
api_v1_router.include_router(trucks.router)
api_v1_router.include_router(trucks.stocks_router)

# Export
__all__ = ["api_v1_router"]
