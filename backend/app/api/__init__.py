"""
API Routes
Projet: SODIPAS (Gestion grossiste fruits)

Module d'agrégation des routers versionnés.
"""

from app.api.v1 import api_v1_router

__all__ = ["api_v1_router"]
