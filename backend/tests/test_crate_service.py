"""
Tests du CrateService: solde de cageots jamais négatif, motifs par sens,
aperçu sans effet de bord.
"""

import pytest

from app.core.exceptions import BusinessValidationError, ConflictError
from app.schemas.crate import CrateDirection, CrateMovementCreate
from app.services.crate_service import CrateService, check_movement, resulting_balance


def movement(client, direction, quantity, reason):
    return CrateMovementCreate(
        client_id=client.id,
        direction=direction,
        quantity=quantity,
        reason=reason,
    )


class TestCrateRules:

    def test_resulting_balance(self):
        assert resulting_balance(22, CrateDirection.ADD, 5) == 27
        assert resulting_balance(22, CrateDirection.REMOVE, 5) == 17

    def test_remove_more_than_balance(self):
        with pytest.raises(BusinessValidationError) as exc_info:
            check_movement(22, CrateDirection.REMOVE, 30)

        assert "22 disponibles" in exc_info.value.detail
        assert exc_info.value.error_code == "INSUFFICIENT_CAGEOTS"
        assert exc_info.value.extra == {"available": 22, "requested": 30}

    def test_remove_whole_balance(self):
        check_movement(22, CrateDirection.REMOVE, 22)

    @pytest.mark.parametrize("quantity", [0, -3])
    def test_invalid_quantity(self, quantity):
        with pytest.raises(BusinessValidationError, match="quantité valide"):
            check_movement(22, CrateDirection.ADD, quantity)


class TestPreview:

    def test_preview_allowed(self, make_client):
        client = make_client(cageots=22)
        preview = CrateService().preview_movement(client, CrateDirection.REMOVE, 5)

        assert preview.allowed is True
        assert preview.current_balance == 22
        assert preview.resulting_balance == 17
        assert client.cageots == 22

    def test_preview_refused(self, make_client):
        client = make_client(cageots=22)
        preview = CrateService().preview_movement(client, CrateDirection.REMOVE, 30)

        assert preview.allowed is False
        assert "22 disponibles" in preview.message
        assert client.cageots == 22


class TestApplyMovement:

    def test_remove_then_refuse_overdraw(self, db, run, ctx, make_client):
        client = make_client(cageots=22)
        service = CrateService()

        recorded = run(service.apply_movement(
            db, ctx, movement(client, CrateDirection.REMOVE, 5, "vente")
        ))
        assert client.cageots == 17
        assert recorded.balance_before == 22
        assert recorded.balance_after == 17

        with pytest.raises(BusinessValidationError):
            run(service.apply_movement(
                db, ctx, movement(client, CrateDirection.REMOVE, 30, "vente")
            ))
        assert client.cageots == 17
        assert len(run(service.get_all(db, client_id=client.id))) == 1

    def test_add_movement(self, db, run, ctx, make_client):
        client = make_client(cageots=0)
        recorded = run(CrateService().apply_movement(
            db, ctx, movement(client, CrateDirection.ADD, 12, "Livraison")
        ))

        assert client.cageots == 12
        assert recorded.reason == "livraison"
        assert recorded.signed_quantity == 12
        assert recorded.cashier_id == "C1"
        assert recorded.operating_date == ctx.operating_date

    def test_reason_must_match_direction(self, db, run, ctx, make_client):
        client = make_client(cageots=10)
        with pytest.raises(BusinessValidationError, match="invalide"):
            run(CrateService().apply_movement(
                db, ctx, movement(client, CrateDirection.ADD, 5, "vente")
            ))
        assert client.cageots == 10

    def test_reason_required(self, db, run, ctx, make_client):
        client = make_client(cageots=10)
        with pytest.raises(BusinessValidationError, match="raison"):
            run(CrateService().apply_movement(
                db, ctx, movement(client, CrateDirection.REMOVE, 5, "  ")
            ))

    def test_zero_quantity_rejected(self, db, run, ctx, make_client):
        client = make_client(cageots=10)
        with pytest.raises(BusinessValidationError):
            run(CrateService().apply_movement(
                db, ctx, movement(client, CrateDirection.REMOVE, 0, "collecte")
            ))
        assert client.cageots == 10

    def test_stale_client_version(self, db, run, ctx, make_client):
        client = make_client(cageots=10)
        service = CrateService()
        run(service.apply_movement(db, ctx, movement(client, CrateDirection.ADD, 1, "livraison")))

        stale = CrateMovementCreate(
            client_id=client.id,
            direction=CrateDirection.REMOVE,
            quantity=1,
            reason="collecte",
            expected_client_version=1,
        )
        with pytest.raises(ConflictError):
            run(service.apply_movement(db, ctx, stale))
        assert client.cageots == 11
