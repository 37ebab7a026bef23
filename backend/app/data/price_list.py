# Tarif des articles: nom → prix unitaire par défaut (FCFA).
# Utilisé quand une ligne de facture est saisie sans prix.

from typing import Optional

PRICE_LIST = [
    {"article": "Bananes plantain", "price": 5000},
    {"article": "Bananes douces", "price": 4500},
    {"article": "Mangues", "price": 2500},
    {"article": "Ananas", "price": 4000},
    {"article": "Oranges", "price": 2000},
    {"article": "Papayes", "price": 7000},
]


def get_price_by_article(article: str) -> Optional[int]:
    name = article.strip().casefold()
    for item in PRICE_LIST:
        if item["article"].casefold() == name:
            return item["price"]
    return None
