"""
Configuration pytest et fixtures communes.

Les tests de service tournent sur une base SQLite en mémoire (aiosqlite),
sur une boucle asyncio dédiée à chaque test.
"""

import asyncio
import datetime
import os
import tempfile

# L'engine global est créé à l'import de app.core.database: la
# configuration de test doit être posée avant tout import de l'application.
os.environ["DATABASE_URL"] = (
    f"sqlite+aiosqlite:///{os.path.join(tempfile.gettempdir(), 'sodipas_test.db')}"
)
os.environ["APP_ENV"] = "testing"
os.environ.setdefault("SECRET_KEY", "sodipas-test-secret-key")

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from app.models import Base, Client
from app.schemas.token import Actor, ActorRole, LedgerContext

OPERATING_DATE = datetime.date(2024, 1, 15)
DUE_DATE = datetime.date(2024, 2, 15)


# ============================================================
# Boucle asyncio et base de données
# ============================================================


@pytest.fixture
def loop():
    """Boucle asyncio propre à chaque test."""
    loop = asyncio.new_event_loop()
    yield loop
    loop.close()


@pytest.fixture
def run(loop):
    """Exécute une coroutine jusqu'à son terme sur la boucle du test."""
    return loop.run_until_complete


@pytest.fixture
def db(run):
    """Session async sur une base SQLite en mémoire, schéma complet."""
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    async def create_schema():
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    run(create_schema())
    session_factory = async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )
    session = session_factory()
    yield session
    run(session.close())
    run(engine.dispose())


# ============================================================
# Acteurs et contexte d'écriture
# ============================================================


@pytest.fixture
def cashier():
    return Actor(id="C1", name="Awa Ndiaye", role=ActorRole.CASHIER, hangar="H1")


@pytest.fixture
def manager():
    return Actor(id="M1", name="Ibrahima Fall", role=ActorRole.MANAGER)


@pytest.fixture
def ctx(cashier):
    """Caissier C1, hangar H1, journée du 15/01/2024."""
    return LedgerContext(actor=cashier, hangar="H1", operating_date=OPERATING_DATE)


@pytest.fixture
def next_day_ctx(cashier):
    return LedgerContext(
        actor=cashier,
        hangar="H1",
        operating_date=OPERATING_DATE + datetime.timedelta(days=1),
    )


# ============================================================
# Clients
# ============================================================


@pytest.fixture
def make_client(db, run):
    """Fabrique de clients enregistrés en base."""
    counter = {"n": 0}

    def factory(name="Moussa Diop", cageots=0, debt=0, debt_limit=500000, phone=None):
        counter["n"] += 1
        client = Client(
            name=name,
            phone=phone or f"77000{counter['n']:04d}",
            debt=debt,
            debt_limit=debt_limit,
            cageots=cageots,
            is_blocked=False,
            is_active=True,
        )
        db.add(client)
        run(db.commit())
        return client

    return factory
