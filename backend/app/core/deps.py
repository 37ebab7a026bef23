"""
Dependency Injection pour l'authentification et le contexte d'écriture
Projet: SODIPAS (Gestion grossiste fruits)

L'identité de l'acteur vient du jeton JWT émis par le service
d'authentification; elle n'est pas revérifiée en base.
"""

import datetime
from typing import Annotated, Optional
from zoneinfo import ZoneInfo

from fastapi import Depends, HTTPException, Query, status
from fastapi.security import OAuth2PasswordBearer

from app.core.config import settings
from app.core.security import actor_from_token, decode_token
from app.schemas.token import Actor, LedgerContext

# OAuth2 scheme - extrait le jeton de l'en-tête Authorization
oauth2_scheme = OAuth2PasswordBearer(
    tokenUrl="/api/v1/auth/login",
    auto_error=False,
)


async def get_current_actor(
    token: Optional[str] = Depends(oauth2_scheme),
) -> Actor:
    """
    Dependency: acteur courant à partir du jeton JWT.

    Args:
        token: Jeton extrait de l'en-tête Authorization

    Returns:
        L'acteur courant

    Raises:
        HTTPException 401: Jeton absent, invalide ou expiré
    """
    if not token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Jeton d'authentification manquant",
            headers={"WWW-Authenticate": "Bearer"},
        )

    return actor_from_token(decode_token(token))


def require_role(*allowed_roles: str):
    """
    Fabrique une dependency qui vérifie le rôle de l'acteur.

    Args:
        allowed_roles: Rôles autorisés pour l'endpoint

    Returns:
        Dependency qui renvoie l'acteur s'il est autorisé

    Example:
        @router.post("/{closure_id}/validate")
        async def validate(manager: Actor = Depends(require_role("admin", "manager"))):
            ...
    """
    async def role_checker(
        current_actor: Annotated[Actor, Depends(get_current_actor)]
    ) -> Actor:
        if current_actor.role.value not in allowed_roles:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Accès refusé. Rôle requis: {', '.join(allowed_roles)}",
            )
        return current_actor

    return role_checker


def get_operating_date() -> datetime.date:
    """Journée d'exploitation: date du jour dans le fuseau configuré."""
    return datetime.datetime.now(ZoneInfo(settings.timezone)).date()


async def get_ledger_context(
    actor: Annotated[Actor, Depends(get_current_actor)],
    operating_date: Annotated[datetime.date, Depends(get_operating_date)],
    hangar: Optional[str] = Query(
        None,
        max_length=100,
        description="Hangar (à défaut celui de l'acteur)",
    ),
) -> LedgerContext:
    """
    Dependency: contexte explicite passé aux opérations du grand livre.

    Un caissier rattaché à un hangar ne peut pas écrire pour un autre hangar.

    Raises:
        HTTPException 403: Hangar différent de celui de l'acteur
    """
    if hangar and actor.hangar and hangar != actor.hangar and not actor.is_manager:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=f"Accès refusé au hangar '{hangar}'",
        )
    return LedgerContext(
        actor=actor,
        hangar=hangar or actor.hangar,
        operating_date=operating_date,
    )


# Alias de types pour usage courant
CurrentActor = Annotated[Actor, Depends(get_current_actor)]
ManagerActor = Annotated[Actor, Depends(require_role("admin", "manager"))]
CurrentContext = Annotated[LedgerContext, Depends(get_ledger_context)]
OperatingDate = Annotated[datetime.date, Depends(get_operating_date)]


__all__ = [
    "get_current_actor",
    "require_role",
    "get_operating_date",
    "get_ledger_context",
    "oauth2_scheme",
    "CurrentActor",
    "ManagerActor",
    "CurrentContext",
    "OperatingDate",
]
