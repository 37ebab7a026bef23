"""
Tests du TruckService: enregistrement, déchargement unique et stock par hangar.
"""

import uuid

import pytest

from app.core.exceptions import BusinessValidationError, ConflictError, NotFoundError
from app.models.truck import stock_level
from app.schemas.truck import StockLevel, TruckArticleCreate, TruckCreate, TruckStatus, TruckUnload, UnloadItem
from app.services.truck_service import TruckService


def mango_truck(**overrides):
    data = {
        "origin": "Ziguinchor",
        "driver": "Lamine Badji",
        "phone": "776543210",
        "hangar": "H1",
        "articles": [TruckArticleCreate(name="Mangues", quantity=100, unit_price=2500)],
    }
    data.update(overrides)
    return TruckCreate(**data)


class TestStockLevel:
    """Seuil 50: critique jusqu'à 50, alerte jusqu'à 75."""

    @pytest.mark.parametrize(
        "quantity, expected",
        [(0, "critical"), (50, "critical"), (51, "warning"), (75, "warning"), (76, "good")],
    )
    def test_levels(self, quantity, expected):
        assert stock_level(quantity, 50) == expected


class TestRegisterTruck:

    def test_value_computed_from_manifest(self, db, run, cashier):
        truck = run(TruckService().register_truck(db, cashier, mango_truck()))

        assert truck.value == 250000
        assert truck.declared_value is None
        assert truck.status == "registered"
        assert truck.registered_by == "Awa Ndiaye"
        assert [a.name for a in truck.articles] == ["Mangues"]

    def test_declared_value_wins(self, db, run, cashier):
        truck = run(TruckService().register_truck(db, cashier, mango_truck(declared_value=240000)))
        assert truck.value == 240000

    def test_required_fields(self, db, run, cashier):
        with pytest.raises(BusinessValidationError, match="chauffeur"):
            run(TruckService().register_truck(db, cashier, mango_truck(driver="  ")))

    def test_incomplete_rows_dropped(self, db, run, cashier):
        truck = run(TruckService().register_truck(db, cashier, mango_truck(articles=[
            TruckArticleCreate(name="Mangues", quantity=100, unit_price=2500),
            TruckArticleCreate(name="Ananas", quantity=20, unit_price=0),
            TruckArticleCreate(name="", quantity=5, unit_price=1000),
        ])))
        assert len(truck.articles) == 1

    def test_repeated_article_merged(self, db, run, cashier):
        service = TruckService()
        truck = run(service.register_truck(db, cashier, mango_truck(articles=[
            TruckArticleCreate(name="Mangues", quantity=100, unit_price=2500),
            TruckArticleCreate(name="Ananas", quantity=20, unit_price=1500),
            TruckArticleCreate(name="mangues", quantity=50, unit_price=2500),
        ])))

        assert [(a.line_number, a.name, a.quantity) for a in truck.articles] == [
            (1, "Mangues", 150),
            (2, "Ananas", 20),
        ]
        assert truck.value == 405000

        run(service.unload_truck(db, cashier, truck.id, TruckUnload(items=[
            UnloadItem(name="Mangues", quantity=150),
            UnloadItem(name="Ananas", quantity=20),
        ])))
        stocks = run(service.list_stocks(db, hangar="H1"))
        assert sum(s.value for s in stocks) == truck.value

    def test_repeated_article_with_two_prices(self, db, run, cashier):
        with pytest.raises(BusinessValidationError, match="deux prix"):
            run(TruckService().register_truck(db, cashier, mango_truck(articles=[
                TruckArticleCreate(name="Mangues", quantity=100, unit_price=2500),
                TruckArticleCreate(name="Mangues", quantity=50, unit_price=3000),
            ])))

    def test_no_valid_article(self, db, run, cashier):
        with pytest.raises(BusinessValidationError):
            run(TruckService().register_truck(db, cashier, mango_truck(articles=[
                TruckArticleCreate(name="Mangues", quantity=0, unit_price=2500),
            ])))


class TestUnloadTruck:

    def test_unload_feeds_hangar_stock(self, db, run, cashier):
        service = TruckService()
        truck = run(service.register_truck(db, cashier, mango_truck()))

        unloaded = run(service.unload_truck(
            db, cashier, truck.id, TruckUnload(items=[UnloadItem(name="Mangues", quantity=100)])
        ))

        assert unloaded.status == TruckStatus.UNLOADED.value
        assert unloaded.unloaded_by == "Awa Ndiaye"
        assert unloaded.unloaded_at is not None

        stocks = run(service.list_stocks(db, hangar="H1"))
        assert len(stocks) == 1
        assert stocks[0].article == "Mangues"
        assert stocks[0].quantity == 100
        assert stocks[0].value == 250000
        assert stocks[0].level == StockLevel.GOOD.value

        entries = run(service.list_stock_entries(db, hangar="H1", article="Mangues"))
        assert [(e.quantity, e.value, e.operator) for e in entries] == [(100, 250000, "Awa Ndiaye")]

    def test_second_unload_rejected(self, db, run, cashier):
        service = TruckService()
        truck = run(service.register_truck(db, cashier, mango_truck()))
        unload = TruckUnload(items=[UnloadItem(name="Mangues", quantity=100)])
        run(service.unload_truck(db, cashier, truck.id, unload))

        with pytest.raises(ConflictError):
            run(service.unload_truck(db, cashier, truck.id, unload))

        stocks = run(service.list_stocks(db, hangar="H1"))
        assert stocks[0].quantity == 100

    def test_all_zero_quantities_rejected(self, db, run, cashier):
        service = TruckService()
        truck = run(service.register_truck(db, cashier, mango_truck()))

        with pytest.raises(BusinessValidationError):
            run(service.unload_truck(
                db, cashier, truck.id, TruckUnload(items=[UnloadItem(name="Mangues", quantity=0)])
            ))
        assert truck.status == "registered"

    def test_article_not_on_manifest(self, db, run, cashier):
        service = TruckService()
        truck = run(service.register_truck(db, cashier, mango_truck()))

        with pytest.raises(BusinessValidationError, match="manifeste"):
            run(service.unload_truck(
                db, cashier, truck.id, TruckUnload(items=[UnloadItem(name="Papayes", quantity=10)])
            ))
        assert run(service.list_stocks(db)) == []

    def test_unknown_truck(self, db, run, cashier):
        with pytest.raises(NotFoundError):
            run(TruckService().unload_truck(
                db, cashier, uuid.uuid4(), TruckUnload(items=[UnloadItem(name="Mangues", quantity=1)])
            ))

    def test_stock_accumulates_per_hangar(self, db, run, cashier):
        service = TruckService()
        for hangar, quantity in (("H1", 30), ("H1", 40), ("H2", 10)):
            truck = run(service.register_truck(db, cashier, mango_truck(hangar=hangar)))
            run(service.unload_truck(
                db,
                cashier,
                truck.id,
                TruckUnload(items=[UnloadItem(name="mangues", quantity=quantity, value=quantity * 2000)]),
            ))

        h1 = run(service.list_stocks(db, hangar="H1"))
        h2 = run(service.list_stocks(db, hangar="H2"))

        assert (h1[0].quantity, h1[0].value, h1[0].level) == (70, 140000, "warning")
        assert (h2[0].quantity, h2[0].level) == (10, "critical")
        critical = run(service.list_stocks(db, level=StockLevel.CRITICAL))
        assert [s.hangar for s in critical] == ["H2"]

    def test_article_case_shares_one_stock(self, db, run, cashier):
        service = TruckService()
        for name in ("Mangues", "mangues"):
            truck = run(service.register_truck(db, cashier, mango_truck(articles=[
                TruckArticleCreate(name=name, quantity=10, unit_price=2500),
            ])))
            run(service.unload_truck(
                db, cashier, truck.id, TruckUnload(items=[UnloadItem(name=name, quantity=10)])
            ))

        stocks = run(service.list_stocks(db, hangar="H1"))
        assert [(s.article, s.quantity, s.value) for s in stocks] == [("Mangues", 20, 50000)]

        entries = run(service.list_stock_entries(db, hangar="H1", article="MANGUES"))
        assert [e.article for e in entries] == ["Mangues", "Mangues"]

    def test_list_trucks_by_status(self, db, run, cashier):
        service = TruckService()
        first = run(service.register_truck(db, cashier, mango_truck()))
        run(service.register_truck(db, cashier, mango_truck(driver="Ousmane Sy")))
        run(service.unload_truck(
            db, cashier, first.id, TruckUnload(items=[UnloadItem(name="Mangues", quantity=100)])
        ))

        registered = run(service.get_all(db, status=TruckStatus.REGISTERED))
        assert [t.driver for t in registered] == ["Ousmane Sy"]
