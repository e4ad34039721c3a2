# gaming_desk/domain/catalog.py
"""Static snack inventory, loaded once at import time."""
from __future__ import annotations

from typing import Dict, Iterator, List, Mapping

from gaming_desk.domain.entities import SnackCatalogItem, SnackOrderLine

SNACK_INVENTORY: Dict[str, Dict[str, object]] = {
    "munchies": {
        "label": "Munchies",
        "items": [
            {"id": "chips_15", "name": "Chips", "price": 15},
            {"id": "big_packet", "name": "big packet", "price": 50},
        ],
    },
    "drinks": {
        "label": "Drinks",
        "items": [
            {"id": "water", "name": "Water", "price": 10},
        ],
    },
}

# Prices of the free-text labels written before snacks were itemised.
# Never merged into SNACK_INVENTORY: old records keep these prices.
LEGACY_SNACK_PRICES: Dict[str, int] = {
    "soda": 50,
    "chips": 40,
    "sandwich": 120,
    "combo": 200,
}


class SnackCatalog:
    def __init__(self, inventory: Mapping[str, Mapping[str, object]]) -> None:
        self._labels: Dict[str, str] = {}
        self._by_category: Dict[str, List[SnackCatalogItem]] = {}
        self._by_id: Dict[str, SnackCatalogItem] = {}
        for key, cat in inventory.items():
            self._labels[key] = str(cat.get("label") or key)
            items = [
                SnackCatalogItem(
                    id=str(raw["id"]),
                    name=str(raw["name"]),
                    unit_price=int(raw["price"]),
                    category=key,
                )
                for raw in (cat.get("items") or [])  # type: ignore[union-attr]
            ]
            self._by_category[key] = items
            for item in items:
                if item.id in self._by_id:
                    raise ValueError(f"Duplicate snack id in catalog: {item.id}")
                self._by_id[item.id] = item

    def __iter__(self) -> Iterator[SnackCatalogItem]:
        return iter(self._by_id.values())

    def __contains__(self, item_id: object) -> bool:
        return item_id in self._by_id

    def get(self, item_id: str) -> SnackCatalogItem | None:
        return self._by_id.get(item_id)

    def price_of(self, item_id: str) -> int | None:
        item = self._by_id.get(item_id)
        return item.unit_price if item else None

    def categories(self) -> Dict[str, List[SnackCatalogItem]]:
        return {k: list(v) for k, v in self._by_category.items()}

    def label_of(self, category: str) -> str:
        return self._labels.get(category, category)

    def order_line(self, item_id: str, quantity: int) -> SnackOrderLine:
        """Snapshot name and price now; later catalog edits must not reprice the line."""
        item = self._by_id.get(item_id)
        if item is None:
            raise KeyError(item_id)
        return SnackOrderLine(
            item_id=item.id,
            display_name=item.name,
            quantity=quantity,
            unit_price=item.unit_price,
            category=item.category,
        )


CATALOG = SnackCatalog(SNACK_INVENTORY)
