"""Business logic layer for Sales ERP.

This module orchestrates the three in-memory stores. It validates raw field
values through the entity constructors and setters, checks that a sale only
references clients and products that exist, and reports every outcome as an
:class:`Outcome` instead of raising, so front-ends can branch on the
:class:`~sales_erp.constants.FailureReason` without parsing log output.

Deleting a client or product never cascades to its sales. Those sales keep
their references and keep describing the deleted record.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Generic, List, Optional, TypeVar

from openpyxl.utils.exceptions import IllegalCharacterError

from . import data_manager, log, set_log_level
from .constants import EntityName, FailureReason
from .exceptions import RecordNotFoundError, ValidationError
from .models import Client, Product, Sale
from .repository import ClientStore, ProductStore, SaleStore

T = TypeVar("T")


@dataclass(frozen=True)
class Outcome(Generic[T]):
    """Tagged result of an orchestration call.

    Exactly one of ``value`` (on success) or ``reason`` (on failure) is set.
    ``message`` carries the human readable explanation that was also logged.
    """

    value: Optional[T] = None
    reason: Optional[FailureReason] = None
    message: str = ""

    @property
    def ok(self) -> bool:
        return self.reason is None

    @classmethod
    def success(cls, value: T, message: str = "") -> "Outcome[T]":
        return cls(value=value, message=message)

    @classmethod
    def failure(cls, reason: FailureReason, message: str) -> "Outcome[T]":
        log.warning("%s", message)
        return cls(reason=reason, message=message)


@dataclass(frozen=True)
class RuntimeContext:
    """Settings plus the stores shared by every BLL call of a session."""

    settings: data_manager.ConfigSettings
    clients: ClientStore = field(default_factory=ClientStore)
    products: ProductStore = field(default_factory=ProductStore)
    sales: SaleStore = field(default_factory=SaleStore)


def create_runtime_context(settings: Optional[data_manager.ConfigSettings] = None) -> RuntimeContext:
    """Build a context with empty stores."""

    return RuntimeContext(settings=settings if settings is not None else data_manager.default_settings())


def load_runtime_context(config_path: Optional[Path] = None) -> RuntimeContext:
    """Resolve settings and build a fresh :class:`RuntimeContext`.

    An explicit ``config_path`` must exist. Without one, the data layer walks
    up from the working directory; when no ``config.ini`` is found the
    defaults are used. The configured log level is applied to the package
    logger.

    Raises:
        FileNotFoundError: If the explicit configuration file does not exist.
        KeyError: If the configuration names an unknown log level.
        configparser.Error: If the configuration file is malformed.
    """

    try:
        located_config = data_manager.find_config_file(config_path)
    except FileNotFoundError:
        log.info("No configuration file found, using defaults")
        settings = data_manager.default_settings()
    else:
        resolved_config = Path(located_config).expanduser().resolve()
        parser = data_manager.read_config(resolved_config)
        settings = data_manager.parse_settings(parser, base_path=resolved_config.parent)
        log.info("Loaded configuration from '%s'", resolved_config)

    set_log_level(settings.log_level)
    return create_runtime_context(settings)


def _is_blank(*values: Any) -> bool:
    return any(not isinstance(value, str) or not value.strip() for value in values)


def _not_found(entity: EntityName, key: str, action: str) -> Outcome[Any]:
    return Outcome.failure(FailureReason.NOT_FOUND, f"Cannot {action}: {entity.value} '{key}' not found")


# ---------------------------------------------------------------------------
# Clients
# ---------------------------------------------------------------------------


def add_client(context: RuntimeContext, name: str, numci: str, email: str) -> Outcome[Client]:
    """Validate and store a new client.

    A client already stored under the same national ID is replaced.
    """

    try:
        client = context.clients.save(Client(name, numci, email))
    except ValidationError as exc:
        return Outcome.failure(FailureReason.VALIDATION, f"Error adding client: {exc}")
    log.info("Registered client '%s'", client.numci)
    return Outcome.success(client)


def get_client_by_id(context: RuntimeContext, numci: str) -> Outcome[Client]:
    if _is_blank(numci):
        return Outcome.failure(FailureReason.INVALID_INPUT, "Cannot look up client: national ID is empty")
    client = context.clients.find_by_id(numci.strip())
    if client is None:
        return _not_found(EntityName.CLIENT, numci.strip(), "look up client")
    return Outcome.success(client)


def edit_client_name(context: RuntimeContext, numci: str, new_name: str) -> Outcome[Client]:
    """Rename a stored client; every sale referencing it reflects the change."""

    if _is_blank(numci, new_name):
        return Outcome.failure(FailureReason.INVALID_INPUT, "Invalid input to edit client name")
    return _edit_client(context, numci.strip(), "name", new_name)


def edit_client_email(context: RuntimeContext, numci: str, new_email: str) -> Outcome[Client]:
    if _is_blank(numci, new_email):
        return Outcome.failure(FailureReason.INVALID_INPUT, "Invalid input to edit client email")
    return _edit_client(context, numci.strip(), "email", new_email)


def _edit_client(context: RuntimeContext, numci: str, attribute: str, value: str) -> Outcome[Client]:
    client = context.clients.find_by_id(numci)
    if client is None:
        return _not_found(EntityName.CLIENT, numci, f"edit client {attribute}")
    try:
        setattr(client, attribute, value)
        context.clients.update(client)
    except ValidationError as exc:
        return Outcome.failure(FailureReason.VALIDATION, f"Error editing client {attribute}: {exc}")
    except RecordNotFoundError as exc:
        return Outcome.failure(FailureReason.NOT_FOUND, str(exc))
    log.info("Updated %s of client '%s'", attribute, numci)
    return Outcome.success(client)


def delete_client_by_id(context: RuntimeContext, numci: str) -> Outcome[Client]:
    """Remove a client. Sales referencing the client are left untouched."""

    if _is_blank(numci):
        return Outcome.failure(FailureReason.INVALID_INPUT, "Cannot delete client: national ID is empty")
    numci = numci.strip()
    client = context.clients.find_by_id(numci)
    if client is None:
        return _not_found(EntityName.CLIENT, numci, "delete client")
    context.clients.delete_by_id(numci)
    log.info("Deleted client '%s'", numci)
    return Outcome.success(client)


def get_all_clients(context: RuntimeContext) -> List[Client]:
    return context.clients.find_all()


# ---------------------------------------------------------------------------
# Products
# ---------------------------------------------------------------------------


def add_product(context: RuntimeContext, identifier: str, name: str, cost: Any) -> Outcome[Product]:
    """Validate and store a new product, replacing one with the same identifier."""

    try:
        product = context.products.save(Product(identifier, name, cost))
    except ValidationError as exc:
        return Outcome.failure(FailureReason.VALIDATION, f"Error adding product: {exc}")
    log.info("Registered product '%s'", product.identifier)
    return Outcome.success(product)


def get_product_by_id(context: RuntimeContext, identifier: str) -> Outcome[Product]:
    if _is_blank(identifier):
        return Outcome.failure(FailureReason.INVALID_INPUT, "Cannot look up product: identifier is empty")
    product = context.products.find_by_id(identifier.strip())
    if product is None:
        return _not_found(EntityName.PRODUCT, identifier.strip(), "look up product")
    return Outcome.success(product)


def edit_product_name(context: RuntimeContext, identifier: str, new_name: str) -> Outcome[Product]:
    if _is_blank(identifier, new_name):
        return Outcome.failure(FailureReason.INVALID_INPUT, "Invalid input to edit product name")
    return _edit_product(context, identifier.strip(), "name", new_name)


def edit_product_cost(context: RuntimeContext, identifier: str, new_cost: Any) -> Outcome[Product]:
    if _is_blank(identifier):
        return Outcome.failure(FailureReason.INVALID_INPUT, "Invalid identifier to edit product cost")
    return _edit_product(context, identifier.strip(), "cost", new_cost)


def _edit_product(context: RuntimeContext, identifier: str, attribute: str, value: Any) -> Outcome[Product]:
    product = context.products.find_by_id(identifier)
    if product is None:
        return _not_found(EntityName.PRODUCT, identifier, f"edit product {attribute}")
    try:
        setattr(product, attribute, value)
        context.products.update(product)
    except ValidationError as exc:
        return Outcome.failure(FailureReason.VALIDATION, f"Error editing product {attribute}: {exc}")
    except RecordNotFoundError as exc:
        return Outcome.failure(FailureReason.NOT_FOUND, str(exc))
    log.info("Updated %s of product '%s'", attribute, identifier)
    return Outcome.success(product)


def delete_product_by_id(context: RuntimeContext, identifier: str) -> Outcome[Product]:
    """Remove a product. Sales referencing the product are left untouched."""

    if _is_blank(identifier):
        return Outcome.failure(FailureReason.INVALID_INPUT, "Cannot delete product: identifier is empty")
    identifier = identifier.strip()
    product = context.products.find_by_id(identifier)
    if product is None:
        return _not_found(EntityName.PRODUCT, identifier, "delete product")
    context.products.delete_by_id(identifier)
    log.info("Deleted product '%s'", identifier)
    return Outcome.success(product)


def get_all_products(context: RuntimeContext) -> List[Product]:
    return context.products.find_all()


# ---------------------------------------------------------------------------
# Sales
# ---------------------------------------------------------------------------


def add_sale(context: RuntimeContext, client_key: str, product_key: str, sale_id: str) -> Outcome[Sale]:
    """Record a sale of an existing product to an existing client.

    The checks run in order: all three arguments must be non-blank, the
    client must exist, then the product must exist. Nothing is stored when a
    check fails. A sale already stored under ``sale_id`` is overwritten.

    Args:
        context (RuntimeContext): Active runtime context.
        client_key (str): National ID of the buying client.
        product_key (str): Identifier of the product sold.
        sale_id (str): Natural key of the new sale.

    Returns:
        Outcome[Sale]: The stored sale, or a failure with ``INVALID_INPUT``,
            ``NOT_FOUND`` or ``VALIDATION``.
    """

    if _is_blank(client_key, product_key, sale_id):
        return Outcome.failure(
            FailureReason.INVALID_INPUT,
            "Invalid input: client national ID, product identifier and sale identifier are required",
        )

    client = context.clients.find_by_id(client_key.strip())
    if client is None:
        return _not_found(EntityName.CLIENT, client_key.strip(), "add sale")

    product = context.products.find_by_id(product_key.strip())
    if product is None:
        return _not_found(EntityName.PRODUCT, product_key.strip(), "add sale")

    try:
        sale = context.sales.save(Sale(client, product, sale_id))
    except ValidationError as exc:
        return Outcome.failure(FailureReason.VALIDATION, f"Error adding sale: {exc}")

    log.info(
        "Recorded sale '%s' of product '%s' to client '%s'",
        sale.sale_id,
        product.identifier,
        client.numci,
    )
    return Outcome.success(sale)


def get_sale_by_id(context: RuntimeContext, sale_id: str) -> Outcome[Sale]:
    if _is_blank(sale_id):
        return Outcome.failure(FailureReason.INVALID_INPUT, "Cannot look up sale: identifier is empty")
    sale = context.sales.find_by_id(sale_id.strip())
    if sale is None:
        return _not_found(EntityName.SALE, sale_id.strip(), "look up sale")
    return Outcome.success(sale)


def set_sale_sold(context: RuntimeContext, sale_id: str, sold: bool) -> Outcome[Sale]:
    """Flip the sold flag of an existing sale."""

    if _is_blank(sale_id):
        return Outcome.failure(FailureReason.INVALID_INPUT, "Cannot edit sale: identifier is empty")
    sale_id = sale_id.strip()
    sale = context.sales.find_by_id(sale_id)
    if sale is None:
        return _not_found(EntityName.SALE, sale_id, "edit sale")
    try:
        sale.sold = sold
        context.sales.update(sale)
    except ValidationError as exc:
        return Outcome.failure(FailureReason.VALIDATION, f"Error editing sale: {exc}")
    except RecordNotFoundError as exc:
        return Outcome.failure(FailureReason.NOT_FOUND, str(exc))
    log.info("Marked sale '%s' as %s", sale_id, sale.status.value.lower())
    return Outcome.success(sale)


def delete_sale_by_id(context: RuntimeContext, sale_id: str) -> Outcome[Sale]:
    if _is_blank(sale_id):
        return Outcome.failure(FailureReason.INVALID_INPUT, "Cannot delete sale: identifier is empty")
    sale_id = sale_id.strip()
    sale = context.sales.find_by_id(sale_id)
    if sale is None:
        return _not_found(EntityName.SALE, sale_id, "delete sale")
    context.sales.delete_by_id(sale_id)
    log.info("Deleted sale '%s'", sale_id)
    return Outcome.success(sale)


def get_all_sales(context: RuntimeContext) -> List[Sale]:
    return context.sales.find_all()


def get_sales_by_client(context: RuntimeContext, numci: str) -> List[Sale]:
    """Return the sales of one client; blank keys yield an empty list."""

    if _is_blank(numci):
        log.warning("Cannot list sales by client: national ID is empty")
        return []
    return context.sales.find_by_client_id(numci.strip())


def get_sales_by_product(context: RuntimeContext, identifier: str) -> List[Sale]:
    """Return the sales of one product; blank keys yield an empty list."""

    if _is_blank(identifier):
        log.warning("Cannot list sales by product: identifier is empty")
        return []
    return context.sales.find_by_product_id(identifier.strip())


# ---------------------------------------------------------------------------
# Export
# ---------------------------------------------------------------------------


def export_snapshot(context: RuntimeContext, destination: Optional[Path] = None) -> Outcome[Path]:
    """Write the current content of every store to an ``.xlsx`` workbook.

    Args:
        context (RuntimeContext): Active runtime context.
        destination (Path | None): Target file. Defaults to the configured
            ``ExportFile``.

    Returns:
        Outcome[Path]: The resolved file written, or ``EXPORT_FAILED`` when the
            file system refuses the write or a value cannot be stored in a
            worksheet cell.
    """

    target = Path(destination) if destination is not None else context.settings.export_file
    try:
        workbook = data_manager.build_workbook(
            context.clients.find_all(),
            context.products.find_all(),
            context.sales.find_all(),
        )
        written = data_manager.save_workbook(workbook, target)
    except (OSError, IllegalCharacterError) as exc:
        return Outcome.failure(FailureReason.EXPORT_FAILED, f"Unable to export snapshot to '{target}': {exc}")
    log.info(
        "Exported %d clients, %d products and %d sales to '%s'",
        len(context.clients),
        len(context.products),
        len(context.sales),
        written,
    )
    return Outcome.success(written)
