"""In-memory keyed stores used by the business logic layer.

Each store maps an entity's natural key to the entity itself. Stores are plain
objects created once per runtime context; nothing is shared at module level,
so tests can build fresh stores for every case.

Single-key operations hold the store lock for their whole duration and are
atomic with respect to each other. Sequences of calls (look up, then update)
are not: a concurrent delete between the two steps is an accepted race.
"""

from __future__ import annotations

import threading
from typing import Callable, Dict, Generic, List, Optional, TypeVar

from . import log
from .constants import EntityName
from .exceptions import RecordNotFoundError
from .models import Client, Product, Sale

T = TypeVar("T")


class KeyedStore(Generic[T]):
    """Generic store backed by a dictionary guarded by a re-entrant lock."""

    entity_name: EntityName

    def __init__(self, key_of: Callable[[T], Optional[str]]) -> None:
        self._key_of = key_of
        self._items: Dict[str, T] = {}
        self._lock = threading.RLock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._items)

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self._items

    def _require_key(self, entity: Optional[T], action: str) -> str:
        if entity is None:
            raise ValueError(f"{self.entity_name.value} to {action} must not be None")
        key = self._key_of(entity)
        if key is None:
            raise ValueError(f"{self.entity_name.value} key must not be None to {action}")
        return key

    def _require_id(self, key: Optional[str], action: str) -> str:
        if key is None:
            raise ValueError(f"{self.entity_name.value} key must not be None to {action}")
        return key

    def save(self, entity: T) -> T:
        """Insert ``entity`` or overwrite the entity stored under its key.

        Raises:
            ValueError: If ``entity`` or its key is ``None``.
        """

        key = self._require_key(entity, "save")
        with self._lock:
            replaced = key in self._items
            self._items[key] = entity
        log.debug("Saved %s '%s' (replaced=%s)", self.entity_name.value, key, replaced)
        return entity

    def update(self, entity: T) -> T:
        """Overwrite an entity that must already be stored.

        Raises:
            ValueError: If ``entity`` or its key is ``None``.
            RecordNotFoundError: If no entity is stored under the key.
        """

        key = self._require_key(entity, "update")
        with self._lock:
            if key not in self._items:
                raise RecordNotFoundError(self.entity_name.value, key)
            self._items[key] = entity
        log.debug("Updated %s '%s'", self.entity_name.value, key)
        return entity

    def find_by_id(self, key: str) -> Optional[T]:
        """Return the entity stored under ``key`` or ``None``."""

        key = self._require_id(key, "search")
        with self._lock:
            return self._items.get(key)

    def find_all(self) -> List[T]:
        """Return a new list holding every stored entity."""

        with self._lock:
            return list(self._items.values())

    def delete(self, entity: T) -> None:
        self.delete_by_id(self._require_key(entity, "delete"))

    def delete_by_id(self, key: str) -> None:
        """Remove ``key`` from the store. Missing keys are ignored."""

        key = self._require_id(key, "delete")
        with self._lock:
            removed = self._items.pop(key, None)
        log.debug("Deleted %s '%s' (present=%s)", self.entity_name.value, key, removed is not None)


class ClientStore(KeyedStore[Client]):
    """Clients keyed by national ID number."""

    entity_name = EntityName.CLIENT

    def __init__(self) -> None:
        super().__init__(lambda client: client.numci)


class ProductStore(KeyedStore[Product]):
    """Products keyed by identifier."""

    entity_name = EntityName.PRODUCT

    def __init__(self) -> None:
        super().__init__(lambda product: product.identifier)


class SaleStore(KeyedStore[Sale]):
    """Sales keyed by sale identifier, with scans over the embedded references."""

    entity_name = EntityName.SALE

    def __init__(self) -> None:
        super().__init__(lambda sale: sale.sale_id)

    def find_by_client_id(self, numci: str) -> List[Sale]:
        """Return every sale whose client has national ID ``numci``."""

        numci = self._require_id(numci, "filter by client")
        return [sale for sale in self.find_all() if sale.client.numci == numci]

    def find_by_product_id(self, identifier: str) -> List[Sale]:
        """Return every sale whose product has identifier ``identifier``."""

        identifier = self._require_id(identifier, "filter by product")
        return [sale for sale in self.find_all() if sale.product.identifier == identifier]


__all__ = [
    "KeyedStore",
    "ClientStore",
    "ProductStore",
    "SaleStore",
]
