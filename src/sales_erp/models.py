"""Entity types for Sales ERP.

Clients, products and sales are identified by a natural key (the client's
national ID number, the product identifier and the sale identifier). Every
constructor and every setter runs the same validation helpers, so an entity
cannot be observed in an invalid state regardless of how it was modified.

Sales hold references to the very :class:`Client` and :class:`Product`
instances kept by the stores. Editing a client or product is therefore visible
through every sale that points at it.
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal, InvalidOperation
from typing import Any, Optional

from .constants import EMAIL_PATTERN, NUMCI_PATTERN, SaleStatus
from .exceptions import ValidationError


def require_text(value: Any, field_name: str) -> str:
    """Return ``value`` stripped of surrounding whitespace.

    Args:
        value (Any): Raw field value supplied by the caller.
        field_name (str): Human readable field name used in error messages.

    Returns:
        str: The trimmed text.

    Raises:
        ValidationError: If ``value`` is not a string or is blank once trimmed.
    """

    if not isinstance(value, str) or not value.strip():
        raise ValidationError(field_name, "must not be empty")
    return value.strip()


def require_email(value: Any) -> str:
    """Validate and normalise an email address."""

    email = require_text(value, "email")
    if EMAIL_PATTERN.fullmatch(email) is None:
        raise ValidationError("email", f"invalid email format: {email!r}")
    return email


def require_numci(value: Any) -> str:
    """Validate and normalise a national ID number (digits only, no dots)."""

    numci = require_text(value, "numci")
    if NUMCI_PATTERN.fullmatch(numci) is None:
        raise ValidationError("numci", f"must contain digits only: {numci!r}")
    return numci


def require_cost(value: Any) -> Decimal:
    """Convert ``value`` into a non-negative :class:`~decimal.Decimal`.

    Integers, floats, decimals and numeric strings are accepted. Floats go
    through ``str`` first so ``0.1`` is stored as ``Decimal("0.1")``.

    Raises:
        ValidationError: If the value is not numeric, not finite or negative.
    """

    if isinstance(value, bool) or not isinstance(value, (int, float, str, Decimal)):
        raise ValidationError("cost", f"must be a number: {value!r}")
    try:
        cost = Decimal(str(value).strip())
    except InvalidOperation as exc:
        raise ValidationError("cost", f"must be a number: {value!r}") from exc
    if not cost.is_finite():
        raise ValidationError("cost", f"must be a finite number: {value!r}")
    if cost < 0:
        raise ValidationError("cost", f"must not be negative: {cost}")
    return cost


class Client:
    """A registered buyer keyed by national ID number (``numci``)."""

    def __init__(self, name: str, numci: str, email: str, *, registration_date: Optional[date] = None):
        self.name = name
        self._numci = require_numci(numci)
        self.email = email
        self._registration_date = registration_date if registration_date is not None else date.today()

    @property
    def key(self) -> str:
        return self._numci

    @property
    def numci(self) -> str:
        return self._numci

    @property
    def registration_date(self) -> date:
        return self._registration_date

    @property
    def name(self) -> str:
        return self._name

    @name.setter
    def name(self, value: str) -> None:
        self._name = require_text(value, "name")

    @property
    def email(self) -> str:
        return self._email

    @email.setter
    def email(self, value: str) -> None:
        self._email = require_email(value)

    def describe(self) -> str:
        """Render every client field on a single line."""

        return (
            f"CI: {self._numci}, Name: {self._name}, Email: {self._email}, "
            f"Registered: {self._registration_date.isoformat()}"
        )

    def __str__(self) -> str:
        return self.describe()

    def __repr__(self) -> str:
        return f"Client(name={self._name!r}, numci={self._numci!r}, email={self._email!r})"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Client):
            return NotImplemented
        return self._numci == other._numci

    def __hash__(self) -> int:
        return hash(self._numci)


class Product:
    """A catalogue item keyed by its identifier."""

    def __init__(self, identifier: str, name: str, cost: Any):
        self._identifier = require_text(identifier, "identifier")
        self.name = name
        self.cost = cost

    @property
    def key(self) -> str:
        return self._identifier

    @property
    def identifier(self) -> str:
        return self._identifier

    @property
    def name(self) -> str:
        return self._name

    @name.setter
    def name(self, value: str) -> None:
        self._name = require_text(value, "name")

    @property
    def cost(self) -> Decimal:
        return self._cost

    @cost.setter
    def cost(self, value: Any) -> None:
        self._cost = require_cost(value)

    def describe(self) -> str:
        return f"ID: {self._identifier}, Name: {self._name}, Cost: {self._cost:.2f}"

    def __str__(self) -> str:
        return self.describe()

    def __repr__(self) -> str:
        return f"Product(identifier={self._identifier!r}, name={self._name!r}, cost={self._cost!r})"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Product):
            return NotImplemented
        return self._identifier == other._identifier

    def __hash__(self) -> int:
        return hash(self._identifier)


class Sale:
    """A purchase of one product by one client.

    The client and product are fixed at construction; only the ``sold`` flag
    can change afterwards. A sale created through the constructor starts out
    as sold.
    """

    def __init__(
        self,
        client: Client,
        product: Product,
        sale_id: str,
        *,
        purchase_date: Optional[date] = None,
        sold: bool = True,
    ):
        if not isinstance(client, Client):
            raise ValidationError("client", "a sale requires a client")
        if not isinstance(product, Product):
            raise ValidationError("product", "a sale requires a product")
        self._client = client
        self._product = product
        self._sale_id = require_text(sale_id, "sale_id")
        self._purchase_date = purchase_date if purchase_date is not None else date.today()
        self.sold = sold

    @property
    def key(self) -> str:
        return self._sale_id

    @property
    def sale_id(self) -> str:
        return self._sale_id

    @property
    def client(self) -> Client:
        return self._client

    @property
    def product(self) -> Product:
        return self._product

    @property
    def purchase_date(self) -> date:
        return self._purchase_date

    @property
    def sold(self) -> bool:
        return self._sold

    @sold.setter
    def sold(self, value: bool) -> None:
        if not isinstance(value, bool):
            raise ValidationError("sold", f"must be a boolean: {value!r}")
        self._sold = value

    @property
    def status(self) -> SaleStatus:
        return SaleStatus.SOLD if self._sold else SaleStatus.PENDING

    def describe(self) -> str:
        # Names are read through the shared references on every call.
        return (
            f"Sale: {self._sale_id}, Client: {self._client.name}, Product: {self._product.name}, "
            f"Date: {self._purchase_date.isoformat()}, Status: {self.status.value}"
        )

    def __str__(self) -> str:
        return self.describe()

    def __repr__(self) -> str:
        return (
            f"Sale(sale_id={self._sale_id!r}, client={self._client.numci!r}, "
            f"product={self._product.identifier!r}, sold={self._sold!r})"
        )

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Sale):
            return NotImplemented
        return self._sale_id == other._sale_id

    def __hash__(self) -> int:
        return hash(self._sale_id)


__all__ = [
    "Client",
    "Product",
    "Sale",
    "require_text",
    "require_email",
    "require_numci",
    "require_cost",
]
