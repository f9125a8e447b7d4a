"""Unit tests for the in-memory keyed stores."""

from __future__ import annotations

import threading

import pytest

from sales_erp.exceptions import RecordNotFoundError
from sales_erp.models import Client, Product, Sale
from sales_erp.repository import ClientStore, ProductStore, SaleStore


@pytest.fixture
def ana():
    return Client("Ana", "12345678", "ana@test.com")


@pytest.fixture
def bruno():
    return Client("Bruno", "87654321", "bruno@test.com")


@pytest.fixture
def keyboard():
    return Product("P1", "Keyboard", "25.50")


@pytest.fixture
def mouse():
    return Product("P2", "Mouse", "10")


# ---------------------------------------------------------------------------
# Generic store contract
# ---------------------------------------------------------------------------


@pytest.mark.parametrize(
    ("store_factory", "entity_factory", "key"),
    [
        (ClientStore, lambda: Client("Ana", "12345678", "ana@test.com"), "12345678"),
        (ProductStore, lambda: Product("P1", "Keyboard", 1), "P1"),
        (
            SaleStore,
            lambda: Sale(Client("Ana", "12345678", "ana@test.com"), Product("P1", "Keyboard", 1), "S1"),
            "S1",
        ),
    ],
)
def test_save_then_find_by_id_round_trips(store_factory, entity_factory, key):
    """Every store returns the saved entity under its natural key."""

    store = store_factory()
    entity = entity_factory()

    assert store.save(entity) is entity
    assert store.find_by_id(key) is entity
    assert key in store
    assert len(store) == 1


def test_save_overwrites_existing_key(ana):
    store = ClientStore()
    store.save(ana)
    replacement = Client("Ana Maria", "12345678", "ana.maria@test.com")

    store.save(replacement)

    assert store.find_by_id("12345678") is replacement
    assert len(store) == 1


def test_save_rejects_none():
    with pytest.raises(ValueError):
        ClientStore().save(None)


def test_update_requires_existing_key(ana):
    """update distinguishes 'must already exist' from save."""

    store = ClientStore()
    with pytest.raises(RecordNotFoundError) as excinfo:
        store.update(ana)
    assert excinfo.value.entity_name == "Client"
    assert excinfo.value.entity_id == "12345678"
    assert len(store) == 0

    store.save(ana)
    assert store.update(ana) is ana


def test_find_by_id_returns_none_for_missing_key():
    assert ProductStore().find_by_id("missing") is None


def test_find_by_id_rejects_none_key():
    with pytest.raises(ValueError):
        ProductStore().find_by_id(None)


def test_find_all_returns_defensive_copy(keyboard, mouse):
    store = ProductStore()
    store.save(keyboard)
    store.save(mouse)

    snapshot = store.find_all()
    snapshot.clear()

    assert {product.identifier for product in store.find_all()} == {"P1", "P2"}


def test_delete_by_id_is_idempotent(keyboard):
    store = ProductStore()
    store.save(keyboard)

    store.delete_by_id("P1")
    store.delete_by_id("P1")

    assert store.find_by_id("P1") is None


def test_delete_uses_entity_key(ana):
    store = ClientStore()
    store.save(ana)

    store.delete(Client("Someone", "12345678", "someone@test.com"))

    assert len(store) == 0


@pytest.mark.parametrize("method", ["delete", "delete_by_id"])
def test_delete_rejects_none(method):
    with pytest.raises(ValueError):
        getattr(ClientStore(), method)(None)


def test_concurrent_saves_keep_every_entity():
    """Parallel writers on distinct keys never lose an insert."""

    store = ProductStore()

    def _writer(offset: int) -> None:
        for index in range(200):
            store.save(Product(f"P{offset}-{index}", "Item", index))

    threads = [threading.Thread(target=_writer, args=(offset,)) for offset in range(8)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert len(store) == 8 * 200


# ---------------------------------------------------------------------------
# Cross-reference queries
# ---------------------------------------------------------------------------


@pytest.fixture
def sale_store(ana, bruno, keyboard, mouse):
    store = SaleStore()
    store.save(Sale(ana, keyboard, "S1"))
    store.save(Sale(ana, mouse, "S2"))
    store.save(Sale(bruno, keyboard, "S3"))
    return store


def test_find_by_client_id_filters_on_embedded_client(sale_store):
    assert {sale.sale_id for sale in sale_store.find_by_client_id("12345678")} == {"S1", "S2"}
    assert [sale.sale_id for sale in sale_store.find_by_client_id("87654321")] == ["S3"]


def test_find_by_product_id_filters_on_embedded_product(sale_store):
    assert {sale.sale_id for sale in sale_store.find_by_product_id("P1")} == {"S1", "S3"}


def test_cross_reference_queries_return_empty_lists(sale_store):
    assert sale_store.find_by_client_id("00000000") == []
    assert sale_store.find_by_product_id("P9") == []
    assert SaleStore().find_by_client_id("12345678") == []


def test_cross_reference_queries_reject_none(sale_store):
    with pytest.raises(ValueError):
        sale_store.find_by_client_id(None)
    with pytest.raises(ValueError):
        sale_store.find_by_product_id(None)
