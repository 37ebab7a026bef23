"""
Tests du commit transactionnel (commit_or_rollback).

Une opération du grand livre écrit tout ou rien: version périmée et panne
de la base laissent le client et l'historique inchangés.
"""

import datetime

import pytest
from sqlalchemy.exc import OperationalError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from app.core.exceptions import CollaboratorError, ConflictError
from app.models import Base, Client
from app.schemas.crate import CrateDirection, CrateMovementCreate
from app.schemas.token import LedgerContext
from app.services.crate_service import CrateService

OPERATING_DATE = datetime.date(2024, 1, 15)


def delivery(client, quantity=5):
    return CrateMovementCreate(
        client_id=client.id,
        direction=CrateDirection.ADD,
        quantity=quantity,
        reason="livraison",
    )


@pytest.fixture
def session_factory(tmp_path, run):
    """Base SQLite fichier: chaque session a sa propre connexion."""
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'ledger.db'}", poolclass=NullPool
    )

    async def create_schema():
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    run(create_schema())
    yield async_sessionmaker(
        bind=engine, class_=AsyncSession, expire_on_commit=False, autoflush=False
    )
    run(engine.dispose())


# ============================================================
# Version périmée
# ============================================================


class TestStaleSnapshot:

    def test_concurrent_update_rejected(self, session_factory, run, cashier):
        ctx = LedgerContext(actor=cashier, hangar="H1", operating_date=OPERATING_DATE)
        first = session_factory()
        second = session_factory()

        client = Client(
            name="Moussa Diop", phone="771234567", debt=0, debt_limit=500000,
            cageots=22, is_blocked=False, is_active=True,
        )
        first.add(client)
        run(first.commit())
        assert client.version == 1

        async def rename_elsewhere():
            other = await second.get(Client, client.id)
            other.name = "Moussa Diop Senior"
            await second.commit()
            return other.version

        assert run(rename_elsewhere()) == 2

        with pytest.raises(ConflictError) as exc_info:
            run(CrateService().apply_movement(first, ctx, delivery(client)))
        assert exc_info.value.error_code == "STALE_SNAPSHOT"

        run(first.refresh(client))
        assert client.cageots == 22
        assert client.version == 2
        assert client.name == "Moussa Diop Senior"
        assert run(CrateService().get_all(first, client_id=client.id)) == []

        run(first.close())
        run(second.close())


# ============================================================
# Panne de la base de données
# ============================================================


class TestDatabaseFailure:

    def test_failed_commit_leaves_ledger_unchanged(self, db, run, ctx, make_client, monkeypatch):
        client = make_client(cageots=22, debt=100000)

        async def failing_commit():
            raise OperationalError("COMMIT", {}, Exception("disk I/O error"))

        monkeypatch.setattr(db, "commit", failing_commit)
        with pytest.raises(CollaboratorError):
            run(CrateService().apply_movement(db, ctx, delivery(client)))
        monkeypatch.undo()

        run(db.refresh(client))
        assert client.cageots == 22
        assert client.debt == 100000
        assert run(CrateService().get_all(db, client_id=client.id)) == []

    def test_retry_after_failure_succeeds(self, db, run, ctx, make_client, monkeypatch):
        client = make_client(cageots=22)

        async def failing_commit():
            raise OperationalError("COMMIT", {}, Exception("database is locked"))

        monkeypatch.setattr(db, "commit", failing_commit)
        with pytest.raises(CollaboratorError) as exc_info:
            run(CrateService().apply_movement(db, ctx, delivery(client)))
        assert exc_info.value.status_code == 503
        monkeypatch.undo()

        run(db.refresh(client))
        movement = run(CrateService().apply_movement(db, ctx, delivery(client)))
        assert (movement.balance_before, movement.balance_after) == (22, 27)
