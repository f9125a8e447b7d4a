"""Unit tests for entity construction and field validation."""

from __future__ import annotations

from datetime import date
from decimal import Decimal

import pytest

from sales_erp import constants
from sales_erp.exceptions import ValidationError
from sales_erp.models import Client, Product, Sale


@pytest.fixture
def client():
    return Client("Ana", "12345678", "ana@test.com", registration_date=date(2024, 5, 1))


@pytest.fixture
def product():
    return Product("P1", "Keyboard", "25.50")


# ---------------------------------------------------------------------------
# Client
# ---------------------------------------------------------------------------


def test_client_construction_trims_fields():
    """All string fields are stored without surrounding whitespace."""

    client = Client("  Ana  ", " 12345678 ", " ana@test.com ")

    assert client.name == "Ana"
    assert client.numci == "12345678"
    assert client.email == "ana@test.com"
    assert client.key == "12345678"


def test_client_registration_date_defaults_to_today():
    client = Client("Ana", "12345678", "ana@test.com")
    assert client.registration_date == date.today()


def test_client_describe_lists_all_fields(client):
    """describe should expose national ID, name, email and registration date."""

    text = client.describe()

    assert "12345678" in text
    assert "Ana" in text
    assert "ana@test.com" in text
    assert "2024-05-01" in text
    assert str(client) == text


@pytest.mark.parametrize(
    ("name", "numci", "email", "field"),
    [
        ("", "12345678", "ana@test.com", "name"),
        ("   ", "12345678", "ana@test.com", "name"),
        (None, "12345678", "ana@test.com", "name"),
        ("Ana", "", "ana@test.com", "numci"),
        ("Ana", "12.345.678", "ana@test.com", "numci"),
        ("Ana", "12345abc", "ana@test.com", "numci"),
        ("Ana", "12345678", "", "email"),
        ("Ana", "12345678", "ana.test.com", "email"),
        ("Ana", "12345678", "ana@test", "email"),
        ("Ana", "12345678", "ana@test.comercial", "email"),
    ],
)
def test_client_rejects_invalid_fields(name, numci, email, field):
    """Empty names, non-numeric IDs and malformed emails are rejected."""

    with pytest.raises(ValidationError) as excinfo:
        Client(name, numci, email)
    assert excinfo.value.field_name == field


def test_client_email_pattern_is_ascii_only():
    """Non-ASCII word characters are not accepted in the local part."""

    with pytest.raises(ValidationError):
        Client("Ana", "12345678", "aná@test.com")


def test_client_setters_revalidate(client):
    """Setters run the same rules as the constructor and keep the old value on failure."""

    client.name = "  Ana Maria "
    assert client.name == "Ana Maria"

    with pytest.raises(ValidationError):
        client.email = "not-an-email"
    assert client.email == "ana@test.com"

    with pytest.raises(ValidationError):
        client.name = ""
    assert client.name == "Ana Maria"


def test_client_key_is_read_only(client):
    with pytest.raises(AttributeError):
        client.numci = "999"


def test_client_equality_uses_numci_only(client):
    twin = Client("Other", "12345678", "other@test.com")
    stranger = Client("Ana", "11111111", "ana@test.com")

    assert client == twin
    assert hash(client) == hash(twin)
    assert client != stranger
    assert len({client, twin, stranger}) == 2


# ---------------------------------------------------------------------------
# Product
# ---------------------------------------------------------------------------


def test_product_stores_cost_as_decimal(product):
    assert product.cost == Decimal("25.50")
    assert Product("P2", "Mouse", 0.1).cost == Decimal("0.1")
    assert Product("P3", "Pad", 7).cost == Decimal("7")


def test_product_allows_zero_cost():
    assert Product("P0", "Sticker", 0).cost == Decimal("0")


@pytest.mark.parametrize("cost", [-1, "-0.01", "abc", "nan", "inf", None, True, [1]])
def test_product_rejects_invalid_cost(cost):
    with pytest.raises(ValidationError):
        Product("P1", "Keyboard", cost)


@pytest.mark.parametrize(("identifier", "name"), [("", "Keyboard"), ("P1", " "), (None, "Keyboard")])
def test_product_rejects_blank_text(identifier, name):
    with pytest.raises(ValidationError):
        Product(identifier, name, 1)


def test_product_setters_revalidate(product):
    product.cost = "30"
    product.name = " Mechanical keyboard "

    assert product.cost == Decimal("30")
    assert product.name == "Mechanical keyboard"

    with pytest.raises(ValidationError):
        product.cost = -5
    assert product.cost == Decimal("30")


def test_product_describe_formats_cost(product):
    assert product.describe() == "ID: P1, Name: Keyboard, Cost: 25.50"


def test_product_equality_uses_identifier_only(product):
    assert product == Product("P1", "Other", 1)
    assert product != Product("P2", "Keyboard", "25.50")


# ---------------------------------------------------------------------------
# Sale
# ---------------------------------------------------------------------------


def test_sale_defaults_to_sold(client, product):
    sale = Sale(client, product, " S1 ")

    assert sale.sale_id == "S1"
    assert sale.sold is True
    assert sale.status is constants.SaleStatus.SOLD
    assert sale.purchase_date == date.today()


def test_sale_keeps_references_not_copies(client, product):
    """Edits to the client or product are visible through the sale."""

    sale = Sale(client, product, "S1", purchase_date=date(2024, 6, 2))
    client.name = "Ana Maria"
    product.name = "Mechanical keyboard"

    assert sale.client is client
    assert sale.product is product
    assert sale.describe() == (
        "Sale: S1, Client: Ana Maria, Product: Mechanical keyboard, Date: 2024-06-02, Status: Sold"
    )


@pytest.mark.parametrize("missing", ["client", "product"])
def test_sale_requires_client_and_product(client, product, missing):
    arguments = {"client": client, "product": product}
    arguments[missing] = None

    with pytest.raises(ValidationError) as excinfo:
        Sale(arguments["client"], arguments["product"], "S1")
    assert excinfo.value.field_name == missing


def test_sale_requires_identifier(client, product):
    with pytest.raises(ValidationError):
        Sale(client, product, "  ")


def test_sale_sold_flag_is_mutable_and_validated(client, product):
    sale = Sale(client, product, "S1")

    sale.sold = False
    assert sale.status is constants.SaleStatus.PENDING
    assert "Pending" in sale.describe()

    with pytest.raises(ValidationError):
        sale.sold = "yes"
    assert sale.sold is False


def test_sale_references_are_read_only(client, product):
    sale = Sale(client, product, "S1")
    with pytest.raises(AttributeError):
        sale.client = Client("Bruno", "87654321", "bruno@test.com")


def test_sale_equality_uses_identifier_only(client, product):
    other_client = Client("Bruno", "87654321", "bruno@test.com")
    assert Sale(client, product, "S1") == Sale(other_client, product, "S1")
    assert Sale(client, product, "S1") != Sale(client, product, "S2")
