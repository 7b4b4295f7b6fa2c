"""
Catalog lookups consumed by aggregation.

The product and service catalogs are owned by other services. The core only
reads already-fetched snapshots of them through CatalogLookup.
"""

from abc import ABC, abstractmethod
from typing import Iterable, Optional, Union

from .schemas import CatalogEntry


class CatalogLookup(ABC):
    """Read-only product/service lookup."""

    @abstractmethod
    def get_product(self, product_id: str) -> Optional[CatalogEntry]:
        pass

    @abstractmethod
    def get_service(self, service_id: str) -> Optional[CatalogEntry]:
        pass


def _as_entry(item: Union[CatalogEntry, dict]) -> CatalogEntry:
    if isinstance(item, CatalogEntry):
        return item
    return CatalogEntry.model_validate(item)


class InMemoryCatalog(CatalogLookup):
    """Catalog snapshot held in dicts keyed by id."""

    def __init__(self, products: Iterable = (), services: Iterable = ()):
        self.products: dict[str, CatalogEntry] = {}
        self.services: dict[str, CatalogEntry] = {}
        for item in products:
            entry = _as_entry(item)
            self.products[entry.id] = entry
        for item in services:
            entry = _as_entry(item)
            self.services[entry.id] = entry

    def get_product(self, product_id: str) -> Optional[CatalogEntry]:
        return self.products.get(product_id)

    def get_service(self, service_id: str) -> Optional[CatalogEntry]:
        return self.services.get(service_id)
