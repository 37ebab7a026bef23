"""
Service de rapport de clôture (JSON + HTML avec Jinja2).
Projet: SODIPAS (Gestion grossiste fruits)

Le rapport est construit uniquement à partir de l'instantané figé de la
clôture: aucun accès à la base pendant le rendu.
"""

import json
import logging
import os
from zoneinfo import ZoneInfo

from jinja2 import Environment, FileSystemLoader, select_autoescape

from app.core.config import settings
from app.models.cash_register import DailyClosure
from app.models.mixins import as_utc
from app.schemas.cash_register import (
    ClosureReport,
    ReportHeader,
    ReportRow,
    ReportTotals,
    TransactionKind,
)

logger = logging.getLogger(__name__)

BASE_DIR = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
TEMPLATES_DIR = os.path.join(BASE_DIR, "templates")

KIND_LABELS = {
    TransactionKind.PAYMENT.value: "Paiement",
    TransactionKind.INVOICE.value: "Facture",
    TransactionKind.CAGEOTS_IN.value: "Cageots +",
    TransactionKind.CAGEOTS_OUT.value: "Cageots -",
}


def generate_report(closure: DailyClosure) -> ClosureReport:
    """
    Rapport structuré d'une clôture: en-tête, lignes, totaux, notes.

    Fonction pure de l'instantané: deux appels sur la même clôture
    produisent le même rapport.

    Args:
        closure: Clôture avec ses entrées chargées

    Returns:
        ClosureReport
    """
    tz = ZoneInfo(settings.timezone)

    rows = [
        ReportRow(
            position=entry.position,
            time=as_utc(entry.occurred_at).astimezone(tz).strftime("%H:%M"),
            kind=entry.kind,
            reference=entry.reference,
            client_name=entry.client_name,
            description=entry.description,
            method=entry.method,
            amount=entry.amount,
        )
        for entry in sorted(closure.entries, key=lambda e: e.position)
    ]

    return ClosureReport(
        header=ReportHeader(
            title=f"Clôture de caisse du {closure.closure_date:%d/%m/%Y}",
            closure_id=closure.id,
            cashier_id=closure.cashier_id,
            cashier_name=closure.cashier_name,
            hangar=closure.hangar,
            closure_date=closure.closure_date,
            closed_at=as_utc(closure.closed_at),
            validated_by=closure.validated_by,
        ),
        rows=rows,
        totals=ReportTotals(
            opening_balance=closure.opening_balance,
            total_amount=closure.total_amount,
            closing_balance=closure.closing_balance,
            by_method={
                "cash": closure.total_cash,
                "mobile_money": closure.total_mobile_money,
                "bank_transfer": closure.total_bank_transfer,
                "check": closure.total_check,
            },
            transactions_count=closure.transactions_count,
            payments_count=closure.payments_count,
            invoices_created=closure.invoices_created,
            invoices_amount=closure.invoices_amount,
            cageots_movements=closure.cageots_movements,
            cageots_in=closure.cageots_in,
            cageots_out=closure.cageots_out,
        ),
        notes=closure.notes,
    )


def render_report_json(report: ClosureReport) -> str:
    """Export JSON canonique (clés triées, séparateurs fixes)."""
    return json.dumps(
        report.model_dump(mode="json"),
        ensure_ascii=False,
        sort_keys=True,
        separators=(",", ":"),
    )


def format_fcfa(value: int) -> str:
    """1250000 → '1 250 000 F'"""
    return f"{value:,}".replace(",", " ") + " F"


class ReportService:
    """
    Rendu HTML du rapport de clôture pour impression ou envoi.
    L'appelant fournit la clôture avec ses entrées déjà chargées.
    """

    def __init__(self):
        self.env = Environment(
            loader=FileSystemLoader(TEMPLATES_DIR),
            autoescape=select_autoescape(["html"]),
        )
        self.env.filters["fcfa"] = format_fcfa

    def render_html(self, closure: DailyClosure) -> str:
        """
        Génère le rapport HTML d'une clôture.

        Args:
            closure: Clôture avec ses entrées

        Returns:
            str: Document HTML
        """
        report = generate_report(closure)
        template = self.env.get_template("closure_report.html")
        html_out = template.render(
            report=report,
            kind_labels=KIND_LABELS,
            company_name=settings.app_name,
        )
        logger.info("Rapport HTML généré pour la clôture %s", closure.id)
        return html_out


__all__ = [
    "ReportService",
    "generate_report",
    "render_report_json",
    "format_fcfa",
]
