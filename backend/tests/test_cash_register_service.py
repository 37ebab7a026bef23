"""
Tests de la clôture de caisse journalière.

Une journée (caissier, hangar, date) se clôture une seule fois; la clôture
fige les opérations et les totaux, et la journée refuse ensuite toute
nouvelle écriture.
"""

import datetime
import uuid

import pytest

from app.core.exceptions import (
    AuthorizationError,
    ConflictError,
    NotFoundError,
    PreconditionError,
)
from app.models import ClosureEntry, Payment
from app.schemas.cash_register import ClosureCreate, ClosureState, TransactionKind, TransactionRead
from app.schemas.crate import CrateDirection, CrateMovementCreate
from app.schemas.invoice import InvoiceCreate, InvoiceItemCreate, PaymentCreate, PaymentMethod
from app.services.cash_register_service import CashRegisterService, summarize
from app.services.crate_service import CrateService
from app.services.invoice_service import InvoiceService
from app.services.payment_service import PaymentService
from app.services.report_service import ReportService, generate_report, render_report_json

DUE_DATE = datetime.date(2024, 2, 15)


@pytest.fixture
def busy_day(db, run, ctx, make_client):
    """
    Journée de C1 sur H1: une facture de 920 000 F puis trois paiements
    (450 000 espèces, 150 000 mobile money, 320 000 espèces) et un
    retrait de 5 cageots.
    """
    client = make_client(cageots=22)
    invoice = run(InvoiceService().create_invoice(
        db,
        ctx,
        InvoiceCreate(
            client_id=client.id,
            items=[InvoiceItemCreate(article="Bananes", quantity=184, unit_price=5000)],
            due_date=DUE_DATE,
        ),
    ))
    payments = PaymentService()
    for amount, method in (
        (450000, PaymentMethod.CASH),
        (150000, PaymentMethod.MOBILE_MONEY),
        (320000, PaymentMethod.CASH),
    ):
        run(payments.record_payment(
            db,
            ctx,
            PaymentCreate(client_id=client.id, amount=amount, method=method, invoice_ids=[invoice.id]),
        ))
    run(CrateService().apply_movement(
        db,
        ctx,
        CrateMovementCreate(
            client_id=client.id, direction=CrateDirection.REMOVE, quantity=5, reason="vente"
        ),
    ))
    return client, invoice


def second_invoice(client):
    return InvoiceCreate(
        client_id=client.id,
        items=[InvoiceItemCreate(article="Mangues", quantity=10)],
        due_date=DUE_DATE,
    )


# ============================================================
# Totaux (fonction pure)
# ============================================================


class TestSummarize:

    def test_only_payments_feed_the_cash_register(self):
        now = datetime.datetime(2024, 1, 15, 9, 0, tzinfo=datetime.timezone.utc)

        def tx(kind, amount, method=None):
            return TransactionRead(
                kind=kind,
                reference_id=uuid.uuid4(),
                client_id=uuid.uuid4(),
                client_name="Moussa Diop",
                amount=amount,
                method=method,
                description="test",
                occurred_at=now,
            )

        totals = summarize(
            [
                tx(TransactionKind.INVOICE, 250000),
                tx(TransactionKind.PAYMENT, 100000, "cash"),
                tx(TransactionKind.PAYMENT, 50000, "bank_transfer"),
                tx(TransactionKind.CAGEOTS_IN, 10),
                tx(TransactionKind.CAGEOTS_OUT, 4),
            ],
            opening_balance=20000,
        )

        assert totals["total_amount"] == 150000
        assert totals["closing_balance"] == 170000
        assert totals["total_cash"] == 100000
        assert totals["total_bank_transfer"] == 50000
        assert totals["invoices_created"] == 1
        assert totals["invoices_amount"] == 250000
        assert totals["cageots_in"] == 10
        assert totals["cageots_out"] == 4
        assert totals["cageots_movements"] == 2
        assert totals["transactions_count"] == 5


# ============================================================
# Journée ouverte
# ============================================================


class TestOpenDay:

    def test_summary_of_open_day(self, db, run, ctx, busy_day):
        summary = run(CashRegisterService().compute_summary(db, ctx, opening_balance=10000))

        assert summary.status == ClosureState.OPEN
        assert summary.closure_id is None
        assert summary.total_amount == 920000
        assert summary.closing_balance == 930000
        assert summary.payments_count == 3

    def test_transactions_filtered_by_kind(self, db, run, ctx, busy_day):
        service = CashRegisterService()

        all_tx = run(service.list_transactions(db, ctx))
        payments = run(service.list_transactions(db, ctx, kind=TransactionKind.PAYMENT))
        crates = run(service.list_transactions(db, ctx, kind=TransactionKind.CAGEOTS_OUT))

        assert len(all_tx) == 5
        assert [p.amount for p in payments] == [450000, 150000, 320000]
        assert [c.amount for c in crates] == [5]

    def test_other_cashier_sees_nothing(self, db, run, ctx, busy_day):
        other = ctx.model_copy(update={"actor": ctx.actor.model_copy(update={"id": "C2"})})
        assert run(CashRegisterService().list_transactions(db, other)) == []


# ============================================================
# Clôture
# ============================================================


class TestCloseDay:

    def test_close_day_totals(self, db, run, ctx, busy_day):
        closure = run(CashRegisterService().close_day(
            db, ctx, ClosureCreate(opening_balance=0, confirmed=True, notes="RAS")
        ))

        assert closure.total_amount == 920000
        assert closure.closing_balance == 920000
        assert closure.total_cash == 770000
        assert closure.total_mobile_money == 150000
        assert closure.payments_count == 3
        assert closure.invoices_created == 1
        assert closure.invoices_amount == 920000
        assert closure.cageots_out == 5
        assert closure.transactions_count == 5
        assert [e.position for e in closure.entries] == [1, 2, 3, 4, 5]
        assert closure.cashier_id == "C1"
        assert closure.hangar == "H1"
        assert closure.closure_date == ctx.operating_date

    def test_close_twice_keeps_totals(self, db, run, ctx, busy_day):
        service = CashRegisterService()
        run(service.close_day(db, ctx, ClosureCreate(confirmed=True)))

        with pytest.raises(ConflictError) as exc_info:
            run(service.close_day(db, ctx, ClosureCreate(confirmed=True)))

        assert exc_info.value.error_code == "DAY_CLOSED"
        closures = run(service.list_closures(db, cashier_id="C1"))
        assert len(closures) == 1
        assert closures[0].total_amount == 920000

    def test_close_requires_confirmation(self, db, run, ctx, busy_day):
        service = CashRegisterService()

        with pytest.raises(PreconditionError):
            run(service.close_day(db, ctx, ClosureCreate(confirmed=False)))

        assert run(service.list_closures(db)) == []

    def test_empty_day_can_be_closed(self, db, run, ctx):
        closure = run(CashRegisterService().close_day(
            db, ctx, ClosureCreate(opening_balance=5000, confirmed=True)
        ))
        assert closure.total_amount == 0
        assert closure.closing_balance == 5000
        assert closure.entries == []

    def test_long_payment_reference_is_frozen(self, db, run, ctx, make_client):
        client = make_client()
        invoice = run(InvoiceService().create_invoice(db, ctx, second_invoice(client)))
        reference = "OM-" + "7" * 120
        run(PaymentService().record_payment(
            db,
            ctx,
            PaymentCreate(
                client_id=client.id,
                amount=invoice.amount,
                method=PaymentMethod.MOBILE_MONEY,
                reference=reference,
                invoice_ids=[invoice.id],
            ),
        ))

        closure = run(CashRegisterService().close_day(db, ctx, ClosureCreate(confirmed=True)))

        assert reference in [e.reference for e in closure.entries]
        assert (
            ClosureEntry.__table__.c.reference.type.length
            >= Payment.__table__.c.reference.type.length
        )

    def test_summary_of_closed_day_reads_snapshot(self, db, run, ctx, busy_day):
        service = CashRegisterService()
        closure = run(service.close_day(db, ctx, ClosureCreate(opening_balance=1000, confirmed=True)))

        summary = run(service.compute_summary(db, ctx, opening_balance=999999))
        transactions = run(service.list_transactions(db, ctx))

        assert summary.status == ClosureState.CLOSED
        assert summary.closure_id == closure.id
        assert summary.opening_balance == 1000
        assert summary.total_amount == 920000
        assert len(transactions) == 5


class TestClosedDayGuard:
    """Une journée clôturée refuse toute nouvelle opération."""

    def test_invoice_rejected(self, db, run, ctx, busy_day):
        client, _ = busy_day
        run(CashRegisterService().close_day(db, ctx, ClosureCreate(confirmed=True)))

        with pytest.raises(ConflictError) as exc_info:
            run(InvoiceService().create_invoice(db, ctx, second_invoice(client)))

        assert exc_info.value.error_code == "DAY_CLOSED"
        assert client.debt == 0

    def test_payment_rejected(self, db, run, ctx, next_day_ctx, busy_day):
        client, _ = busy_day
        open_invoice = run(InvoiceService().create_invoice(db, ctx, second_invoice(client)))
        run(CashRegisterService().close_day(db, ctx, ClosureCreate(confirmed=True)))

        with pytest.raises(ConflictError):
            run(PaymentService().record_payment(
                db, ctx, PaymentCreate(client_id=client.id, amount=1000, invoice_ids=[open_invoice.id])
            ))
        assert open_invoice.paid_amount == 0

        run(PaymentService().record_payment(
            db,
            next_day_ctx,
            PaymentCreate(client_id=client.id, amount=1000, invoice_ids=[open_invoice.id]),
        ))
        assert open_invoice.paid_amount == 1000

    def test_crate_movement_rejected(self, db, run, ctx, busy_day):
        client, _ = busy_day
        run(CashRegisterService().close_day(db, ctx, ClosureCreate(confirmed=True)))

        with pytest.raises(ConflictError):
            run(CrateService().apply_movement(
                db,
                ctx,
                CrateMovementCreate(
                    client_id=client.id, direction=CrateDirection.ADD, quantity=3, reason="livraison"
                ),
            ))
        assert client.cageots == 17

    def test_next_day_is_open(self, db, run, ctx, next_day_ctx, busy_day):
        client, _ = busy_day
        run(CashRegisterService().close_day(db, ctx, ClosureCreate(confirmed=True)))

        invoice = run(InvoiceService().create_invoice(db, next_day_ctx, second_invoice(client)))
        assert invoice.operating_date == next_day_ctx.operating_date

    def test_late_transactions_do_not_alter_closure(self, db, run, ctx, next_day_ctx, busy_day):
        client, _ = busy_day
        service = CashRegisterService()
        closure = run(service.close_day(db, ctx, ClosureCreate(confirmed=True)))

        run(InvoiceService().create_invoice(db, next_day_ctx, second_invoice(client)))

        reloaded = run(service.get_closure(db, closure.id))
        assert reloaded.transactions_count == 5
        assert len(reloaded.entries) == 5


# ============================================================
# Validation et historique
# ============================================================


class TestValidation:

    def test_manager_validates_once(self, db, run, ctx, manager, busy_day):
        service = CashRegisterService()
        closure = run(service.close_day(db, ctx, ClosureCreate(confirmed=True)))

        validated = run(service.validate_closure(db, closure.id, manager))
        assert validated.is_validated
        assert validated.validated_by == "Ibrahima Fall"

        with pytest.raises(ConflictError):
            run(service.validate_closure(db, closure.id, manager))

    def test_cashier_cannot_validate(self, db, run, ctx, cashier, busy_day):
        service = CashRegisterService()
        closure = run(service.close_day(db, ctx, ClosureCreate(confirmed=True)))

        with pytest.raises(AuthorizationError):
            run(service.validate_closure(db, closure.id, cashier))
        assert closure.validated_by is None

    def test_unknown_closure(self, db, run, manager):
        with pytest.raises(NotFoundError):
            run(CashRegisterService().validate_closure(db, uuid.uuid4(), manager))

    def test_history_filters(self, db, run, ctx, next_day_ctx):
        service = CashRegisterService()
        run(service.close_day(db, ctx, ClosureCreate(confirmed=True)))
        run(service.close_day(db, next_day_ctx, ClosureCreate(confirmed=True)))

        history = run(service.list_closures(db, cashier_id="C1"))
        assert [c.closure_date for c in history] == [
            next_day_ctx.operating_date,
            ctx.operating_date,
        ]

        only_first = run(service.list_closures(db, to_date=ctx.operating_date))
        assert len(only_first) == 1


# ============================================================
# Rapport
# ============================================================


class TestReport:

    def test_report_is_deterministic(self, db, run, ctx, busy_day):
        closure = run(CashRegisterService().close_day(db, ctx, ClosureCreate(confirmed=True)))

        first = render_report_json(generate_report(closure))
        second = render_report_json(generate_report(closure))

        assert first == second
        assert first.encode("utf-8") == second.encode("utf-8")

    def test_report_content(self, db, run, ctx, busy_day):
        closure = run(CashRegisterService().close_day(
            db, ctx, ClosureCreate(confirmed=True, notes="Caisse conforme")
        ))
        report = generate_report(closure)

        assert report.header.hangar == "H1"
        assert report.header.title == "Clôture de caisse du 15/01/2024"
        assert len(report.rows) == 5
        assert report.totals.total_amount == 920000
        assert report.totals.by_method["cash"] == 770000
        assert report.notes == "Caisse conforme"

    def test_html_report(self, db, run, ctx, busy_day):
        closure = run(CashRegisterService().close_day(db, ctx, ClosureCreate(confirmed=True)))

        html = ReportService().render_html(closure)

        assert "920 000 F" in html
        assert "Awa Ndiaye" in html
        assert "Clôture de caisse du 15/01/2024" in html
