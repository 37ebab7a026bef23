"""
Configuration base de données - SQLAlchemy 2.0 Async
Projet: SODIPAS (Gestion grossiste fruits)

Définit l'engine, la session factory, la dependency injection pour FastAPI
et le commit transactionnel des opérations du grand livre.
"""

import logging
from typing import Any, AsyncGenerator

from sqlalchemy import text
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm.exc import StaleDataError
from sqlalchemy.pool import NullPool

from app.core.config import settings
from app.core.exceptions import CollaboratorError, ConflictError

logger = logging.getLogger(__name__)


def _engine_kwargs(database_url: str) -> dict[str, Any]:
    """Options d'engine selon le dialecte (SQLite pour dev/test, PostgreSQL sinon)."""
    if database_url.startswith("sqlite"):
        return {
            "connect_args": {"check_same_thread": False},
            "poolclass": NullPool,
        }
    return {
        "pool_pre_ping": True,
        "pool_size": settings.db_pool_size,
        "max_overflow": settings.db_max_overflow,
    }


# ------------------------------------------------------------
# Engine Async SQLAlchemy 2.0
# ------------------------------------------------------------
engine: AsyncEngine = create_async_engine(
    settings.database_url,
    echo=settings.debug,
    **_engine_kwargs(settings.database_url),
)


# ------------------------------------------------------------
# Session Factory
# ------------------------------------------------------------
AsyncSessionLocal = async_sessionmaker(
    bind=engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autoflush=False,
)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    Dependency injection pour FastAPI.

    Crée une session par requête et la ferme à la fin.

    Yields:
        AsyncSession: Session base de données async
    """
    async with AsyncSessionLocal() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()


async def commit_or_rollback(db: AsyncSession, operation: str) -> None:
    """
    Valide la transaction courante ou l'annule entièrement.

    Chaque opération du grand livre écrit tout ou rien: en cas d'échec
    la session est remise à zéro avant de propager l'erreur.

    Args:
        db: Session base de données
        operation: Libellé de l'opération pour les logs et messages

    Raises:
        ConflictError: version client périmée ou contrainte d'unicité violée
        CollaboratorError: la base de données a échoué
    """
    try:
        await db.commit()
    except StaleDataError as e:
        await db.rollback()
        logger.warning("Instantané périmé pendant '%s': %s", operation, e)
        raise ConflictError(
            f"{operation}: les données ont été modifiées entre-temps, rechargez et réessayez",
            error_code="STALE_SNAPSHOT",
        )
    except IntegrityError as e:
        await db.rollback()
        logger.warning("Contrainte violée pendant '%s': %s", operation, e)
        raise ConflictError(f"{operation}: conflit avec un enregistrement existant")
    except SQLAlchemyError as e:
        await db.rollback()
        logger.error("Erreur base de données pendant '%s': %s", operation, e)
        raise CollaboratorError(f"{operation}: la base de données est indisponible, réessayez")


async def create_tables() -> None:
    """Crée les tables manquantes (développement / SQLite)."""
    from app.models import Base

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Tables créées")


async def init_db() -> None:
    """
    Initialise la connexion à la base de données.

    Exécute une requête de test pour vérifier que la base est joignable.
    """
    try:
        async with engine.begin() as conn:
            await conn.execute(text("SELECT 1"))
        logger.info("Connexion à la base de données établie")
    except Exception as e:
        logger.error("Erreur de connexion à la base de données: %s", e)
        raise
    if settings.create_tables_on_startup:
        await create_tables()


async def close_db() -> None:
    """
    Ferme les connexions à la base de données.

    À appeler lors de l'arrêt de l'application.
    """
    await engine.dispose()
    logger.info("Connexions base de données fermées")
