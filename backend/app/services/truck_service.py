"""
Service Layer pour l'arrivage des camions et le stock des hangars
Projet: SODIPAS (Gestion grossiste fruits)

Cycle d'un camion: registered → unloaded (terminal).
Le stock d'un hangar n'augmente que par le déchargement d'un camion
enregistré; chaque augmentation laisse une entrée de stock attribuée au
camion et au hangar.
"""

import logging
import uuid
from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.database import commit_or_rollback
from app.core.exceptions import BusinessValidationError, ConflictError, NotFoundError
from app.models import Stock, StockEntry, Truck, TruckArticle
from app.models.mixins import utcnow
from app.schemas.token import Actor
from app.schemas.truck import StockLevel, TruckCreate, TruckStatus, TruckUnload

logger = logging.getLogger(__name__)


def valid_articles(data: TruckCreate) -> list[TruckArticle]:
    """
    Articles exploitables du manifeste, numérotés à partir de 1.

    Les lignes sans nom, sans quantité ou sans prix sont écartées. Les
    lignes d'un même article (sans tenir compte de la casse) sont
    regroupées en une seule, à condition d'avoir le même prix unitaire.

    Raises:
        BusinessValidationError: Même article déclaré à deux prix différents
    """
    merged: dict[str, TruckArticle] = {}
    for row in data.articles:
        name = (row.name or "").strip()
        if not name or row.quantity <= 0 or row.unit_price <= 0:
            continue
        article = merged.get(name.lower())
        if article is None:
            merged[name.lower()] = TruckArticle(
                line_number=len(merged) + 1,
                name=name,
                quantity=row.quantity,
                unit=row.unit or "cageots",
                unit_price=row.unit_price,
            )
        elif article.unit_price != row.unit_price:
            raise BusinessValidationError(
                f"L'article '{article.name}' figure sur le manifeste à deux prix différents "
                f"({article.unit_price} F et {row.unit_price} F)"
            )
        else:
            article.quantity += row.quantity
    return list(merged.values())


class TruckService:
    """
    Service d'arrivage et de stock.

    Les opérations d'entrepôt ne passent pas par la caisse: elles sont
    attribuées à l'opérateur mais pas à une journée de caisse.
    """

    async def register_truck(
        self,
        db: AsyncSession,
        actor: Actor,
        data: TruckCreate,
    ) -> Truck:
        """
        Enregistre un camion à l'arrivée.

        Args:
            db: Session base de données
            actor: Opérateur
            data: Provenance, chauffeur, hangar, manifeste

        Returns:
            Camion au statut 'registered'

        Raises:
            BusinessValidationError: Champ obligatoire vide ou aucun article valide
        """
        missing = [
            label
            for label, value in (
                ("provenance", data.origin),
                ("chauffeur", data.driver),
                ("téléphone", data.phone),
                ("hangar", data.hangar),
            )
            if not value
        ]
        if missing:
            raise BusinessValidationError(
                f"Veuillez remplir les champs obligatoires: {', '.join(missing)}"
            )

        articles = valid_articles(data)
        if not articles:
            raise BusinessValidationError(
                "Veuillez ajouter au moins un article avec une quantité et un prix"
            )
        if len(articles) < len(data.articles):
            logger.info(
                "%s ligne(s) du manifeste écartée(s) ou regroupée(s)",
                len(data.articles) - len(articles),
            )

        computed_value = sum(a.total_value for a in articles)
        truck = Truck(
            origin=data.origin,
            driver=data.driver,
            phone=data.phone,
            hangar=data.hangar,
            declared_value=data.declared_value,
            value=data.declared_value if data.declared_value is not None else computed_value,
            status=TruckStatus.REGISTERED.value,
            registered_by=actor.name,
            registered_at=utcnow(),
            articles=articles,
            stock_entries=[],
        )
        db.add(truck)
        await commit_or_rollback(db, "Enregistrement du camion")

        logger.info(
            "Camion enregistré: %s (%s) pour %s, %s article(s), valeur %s F",
            truck.driver, truck.origin, truck.hangar, len(articles), truck.value,
        )
        return truck

    async def unload_truck(
        self,
        db: AsyncSession,
        actor: Actor,
        truck_id: uuid.UUID,
        data: TruckUnload,
    ) -> Truck:
        """
        Décharge un camion enregistré et alimente le stock du hangar.

        Steps:
        1. Vérifie le statut 'registered'
        2. Retient les lignes de quantité > 0, toutes présentes au manifeste
        3. Incrémente le stock (hangar, article) et ajoute une entrée de stock
        4. Passe le camion au statut 'unloaded'

        Raises:
            NotFoundError: Camion inexistant
            ConflictError: Camion déjà déchargé
            BusinessValidationError: Aucune quantité, article hors manifeste ou en double
        """
        truck = await self.get_by_id(db, truck_id)
        if truck.status != TruckStatus.REGISTERED.value:
            logger.warning("Déchargement refusé, camion %s déjà %s", truck.id, truck.status)
            raise ConflictError(
                f"Le camion de {truck.driver} a déjà été déchargé",
                error_code="TRUCK_ALREADY_UNLOADED",
            )

        items = [item for item in data.items if item.quantity > 0]
        if not items:
            raise BusinessValidationError("Veuillez saisir au moins une quantité déchargée")

        manifest = {article.name.lower(): article for article in truck.articles}
        seen = set()
        for item in items:
            key = item.name.lower()
            if key not in manifest:
                raise BusinessValidationError(
                    f"L'article '{item.name}' ne figure pas sur le manifeste du camion"
                )
            if key in seen:
                raise BusinessValidationError(f"L'article '{item.name}' est saisi plusieurs fois")
            seen.add(key)

        for line_number, item in enumerate(items, start=1):
            article = manifest[item.name.lower()]
            if item.quantity > article.quantity:
                logger.warning(
                    "Camion %s: %s %s déchargés pour %s déclarés",
                    truck.id, item.quantity, article.name, article.quantity,
                )
            value = item.value if item.value is not None else item.quantity * article.unit_price

            stock = await self._get_or_create_stock(db, truck.hangar, article)
            stock.quantity += item.quantity
            stock.value += value

            db.add(
                StockEntry(
                    truck=truck,
                    stock=stock,
                    line_number=line_number,
                    hangar=truck.hangar,
                    article=stock.article,
                    unit=article.unit,
                    quantity=item.quantity,
                    value=value,
                    operator=actor.name,
                )
            )

        truck.status = TruckStatus.UNLOADED.value
        truck.unloaded_by = actor.name
        truck.unloaded_at = utcnow()
        await commit_or_rollback(db, "Déchargement du camion")

        logger.info(
            "Camion %s déchargé par %s dans %s: %s article(s)",
            truck.id, actor.name, truck.hangar, len(items),
        )
        return truck

    async def get_by_id(self, db: AsyncSession, truck_id: uuid.UUID) -> Truck:
        """
        Récupère un camion avec son manifeste.

        Raises:
            NotFoundError: Camion inexistant
        """
        truck = await db.get(Truck, truck_id)
        if truck is None:
            raise NotFoundError(f"Camion {truck_id} introuvable")
        return truck

    async def get_all(
        self,
        db: AsyncSession,
        status: Optional[TruckStatus] = None,
        hangar: Optional[str] = None,
        skip: int = 0,
        limit: int = 100,
    ) -> list[Truck]:
        """Liste des camions, les plus récents en premier."""
        stmt = select(Truck).order_by(Truck.registered_at.desc())
        if status:
            stmt = stmt.where(Truck.status == status.value)
        if hangar:
            stmt = stmt.where(Truck.hangar == hangar)
        result = await db.execute(stmt.offset(skip).limit(limit))
        return list(result.scalars().all())

    async def list_stocks(
        self,
        db: AsyncSession,
        hangar: Optional[str] = None,
        level: Optional[StockLevel] = None,
    ) -> list[Stock]:
        """Stock par hangar et article, filtrable par niveau."""
        stmt = select(Stock).order_by(Stock.hangar.asc(), Stock.article.asc())
        if hangar:
            stmt = stmt.where(Stock.hangar == hangar)
        stocks = list((await db.execute(stmt)).scalars().all())
        if level:
            stocks = [s for s in stocks if s.level == level.value]
        return stocks

    async def list_stock_entries(
        self,
        db: AsyncSession,
        hangar: Optional[str] = None,
        article: Optional[str] = None,
        skip: int = 0,
        limit: int = 100,
    ) -> list[StockEntry]:
        """Entrées de stock, les plus récentes en premier."""
        stmt = select(StockEntry).order_by(
            StockEntry.created_at.desc(), StockEntry.line_number.asc()
        )
        if hangar:
            stmt = stmt.where(StockEntry.hangar == hangar)
        if article:
            stmt = stmt.where(func.lower(StockEntry.article) == article.lower())
        result = await db.execute(stmt.offset(skip).limit(limit))
        return list(result.scalars().all())

    async def _get_or_create_stock(
        self,
        db: AsyncSession,
        hangar: str,
        article: TruckArticle,
    ) -> Stock:
        stmt = select(Stock).where(
            Stock.hangar == hangar,
            func.lower(Stock.article) == article.name.lower(),
        )
        stock = (await db.execute(stmt)).scalar_one_or_none()
        if stock is None:
            stock = Stock(
                hangar=hangar,
                article=article.name,
                unit=article.unit,
                quantity=0,
                value=0,
                threshold=settings.default_stock_threshold,
            )
            db.add(stock)
            logger.info("Nouvelle ligne de stock: %s / %s", hangar, article.name)
        return stock


__all__ = ["TruckService", "valid_articles"]
