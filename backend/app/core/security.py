"""
Module de sécurité JWT
Projet: SODIPAS (Gestion grossiste fruits)

Lecture des jetons émis par le service d'authentification.
"""

from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import HTTPException, status
from jose import JWTError, jwt
from pydantic import ValidationError as PydanticValidationError

from app.core.config import settings
from app.schemas.token import Actor, TokenPayload


def create_access_token(actor: Actor, expires_minutes: int = 30) -> str:
    """
    Crée un jeton d'accès JWT pour un acteur.

    Utilisé par les outils internes et les tests; en exploitation les jetons
    viennent du service d'authentification qui partage la même clé.

    Args:
        actor: Acteur à encoder
        expires_minutes: Durée de validité

    Returns:
        Jeton JWT encodé
    """
    expire = datetime.now(timezone.utc) + timedelta(minutes=expires_minutes)
    payload = {
        "sub": actor.id,
        "name": actor.name,
        "role": actor.role.value,
        "hangar": actor.hangar,
        "exp": expire,
    }
    return jwt.encode(payload, settings.secret_key, algorithm=settings.jwt_algorithm)


def decode_token(token: str) -> TokenPayload:
    """
    Décode et valide un jeton JWT.

    Args:
        token: Jeton JWT

    Returns:
        TokenPayload avec l'identité de l'acteur

    Raises:
        HTTPException: Jeton invalide, expiré ou incomplet
    """
    try:
        payload = jwt.decode(
            token,
            settings.secret_key,
            algorithms=[settings.jwt_algorithm],
        )
        return TokenPayload(
            sub=payload.get("sub"),
            name=payload.get("name") or payload.get("sub"),
            role=payload.get("role"),
            hangar=payload.get("hangar"),
            exp=datetime.fromtimestamp(payload.get("exp"), tz=timezone.utc),
        )
    except (JWTError, PydanticValidationError, TypeError) as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=f"Jeton invalide ou expiré: {str(e)}",
            headers={"WWW-Authenticate": "Bearer"},
        )


def actor_from_token(token_data: TokenPayload, hangar: Optional[str] = None) -> Actor:
    """Construit l'acteur à partir du jeton décodé."""
    return Actor(
        id=token_data.sub,
        name=token_data.name,
        role=token_data.role,
        hangar=token_data.hangar or hangar,
    )


__all__ = [
    "create_access_token",
    "decode_token",
    "actor_from_token",
]
