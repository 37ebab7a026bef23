"""
Tests du ClientService.

Création avec soldes à zéro, unicité du téléphone, garde de version,
suppression logique et statut de risque calculé.
"""

import uuid

import pytest
from pydantic import ValidationError as PydanticValidationError

from app.core.exceptions import ConflictError, DuplicateError, NotFoundError
from app.models.client import client_status
from app.schemas.client import ClientCreate, ClientStatus, ClientUpdate
from app.services.client_service import ClientService


# ============================================================
# Statut de risque (fonction pure)
# ============================================================


class TestClientStatus:
    """Statut calculé à partir de la dette et de la limite."""

    def test_no_debt_is_good(self):
        assert client_status(0, 500000) == "good"

    def test_debt_within_limit_is_warning(self):
        assert client_status(250000, 500000) == "warning"

    def test_debt_at_limit_is_warning(self):
        assert client_status(500000, 500000) == "warning"

    def test_debt_over_limit_is_critical(self):
        assert client_status(500001, 500000) == "critical"

    def test_blocked_client_is_critical(self):
        assert client_status(0, 500000, is_blocked=True) == "critical"


# ============================================================
# Schémas
# ============================================================


class TestClientSchemas:

    def test_phone_is_normalized(self):
        data = ClientCreate(name="  Moussa Diop ", phone="77 123-45 67")
        assert data.phone == "771234567"
        assert data.name == "Moussa Diop"

    def test_invalid_phone_rejected(self):
        with pytest.raises(PydanticValidationError):
            ClientCreate(name="Moussa Diop", phone="abc")

    def test_empty_email_becomes_none(self):
        data = ClientCreate(name="Moussa Diop", phone="771234567", email="  ")
        assert data.email is None


# ============================================================
# Service
# ============================================================


class TestClientService:

    def test_create_client_starts_with_zero_balances(self, db, run):
        service = ClientService()
        client = run(service.create(db, ClientCreate(name="Fatou Sarr", phone="+221771112233")))

        assert client.debt == 0
        assert client.cageots == 0
        assert client.debt_limit == 500000
        assert client.version == 1
        assert client.status == "good"

    def test_create_client_with_custom_debt_limit(self, db, run):
        service = ClientService()
        client = run(
            service.create(db, ClientCreate(name="Fatou Sarr", phone="771112233", debt_limit=100000))
        )
        assert client.debt_limit == 100000

    def test_duplicate_phone_rejected(self, db, run):
        service = ClientService()
        run(service.create(db, ClientCreate(name="Fatou Sarr", phone="771112233")))

        with pytest.raises(DuplicateError):
            run(service.create(db, ClientCreate(name="Autre", phone="77 111 22 33")))

    def test_get_unknown_client(self, db, run):
        with pytest.raises(NotFoundError):
            run(ClientService().get_by_id(db, uuid.uuid4()))

    def test_update_bumps_version(self, db, run, make_client):
        client = make_client()
        updated = run(
            ClientService().update(
                db, client.id, ClientUpdate(address="Marché Castors", expected_version=1)
            )
        )
        assert updated.address == "Marché Castors"
        assert updated.version == 2

    def test_update_with_stale_version_rejected(self, db, run, make_client):
        client = make_client()
        service = ClientService()
        run(service.update(db, client.id, ClientUpdate(notes="Livraison le matin")))

        with pytest.raises(ConflictError) as exc_info:
            run(service.update(db, client.id, ClientUpdate(is_blocked=True, expected_version=1)))

        assert exc_info.value.error_code == "STALE_SNAPSHOT"
        assert client.is_blocked is False

    def test_update_phone_to_existing_rejected(self, db, run, make_client):
        make_client(phone="771000001")
        other = make_client(phone="771000002")

        with pytest.raises(DuplicateError):
            run(ClientService().update(db, other.id, ClientUpdate(phone="771000001")))

    def test_delete_client_with_debt_rejected(self, db, run, make_client):
        client = make_client(debt=10000)

        with pytest.raises(ConflictError):
            run(ClientService().delete(db, client.id))
        assert client.is_active is True

    def test_delete_client_with_cageots_rejected(self, db, run, make_client):
        client = make_client(cageots=3)

        with pytest.raises(ConflictError):
            run(ClientService().delete(db, client.id))

    def test_soft_delete(self, db, run, make_client):
        client = make_client()
        service = ClientService()
        run(service.delete(db, client.id))

        with pytest.raises(NotFoundError):
            run(service.get_by_id(db, client.id))
        assert run(service.get_by_id(db, client.id, include_inactive=True)).is_active is False

    def test_deleted_client_phone_can_be_reused(self, db, run, make_client):
        client = make_client(phone="771000009")
        service = ClientService()
        run(service.delete(db, client.id))

        created = run(service.create(db, ClientCreate(name="Nouveau", phone="771000009")))
        assert created.id != client.id

    def test_list_filters_by_status(self, db, run, make_client):
        make_client(name="Aminata", debt=0)
        make_client(name="Bineta", debt=200000)
        make_client(name="Cheikh", debt=600000)
        service = ClientService()

        good, _ = run(service.get_all(db, status=ClientStatus.GOOD))
        warning, _ = run(service.get_all(db, status=ClientStatus.WARNING))
        critical, total = run(service.get_all(db, status=ClientStatus.CRITICAL))

        assert [c.name for c in good] == ["Aminata"]
        assert [c.name for c in warning] == ["Bineta"]
        assert [c.name for c in critical] == ["Cheikh"]
        assert total == 1

    def test_list_search_and_pagination(self, db, run, make_client):
        for name in ("Diallo Fruits", "Diallo Import", "Sow"):
            make_client(name=name)
        service = ClientService()

        clients, total = run(service.get_all(db, page=1, per_page=1, search="diallo"))

        assert total == 2
        assert [c.name for c in clients] == ["Diallo Fruits"]
