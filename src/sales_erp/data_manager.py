"""Configuration and workbook export helpers for Sales ERP.

Records live in memory only, so this module has two narrow responsibilities:

1. Configuration handling: finding and parsing the optional ``config.ini``.
2. Snapshot export: serializing clients, products and sales into an ``.xlsx``
   workbook. Exports are write-only; nothing reads them back into the stores.
"""


from __future__ import annotations

import configparser
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Mapping, Optional, Sequence

import openpyxl
from openpyxl.styles import Font
from openpyxl.workbook import Workbook

from . import log
from .constants import DEFAULT_EXPORT_FILE, DEFAULT_LOG_LEVEL, DEFAULT_STORE_NAME, SheetName
from .models import Client, Product, Sale


CONFIG_FILE_NAME = "config.ini"

SHEET_COLUMNS: Mapping[str, Sequence[str]] = {
    SheetName.CLIENTS.value: ["NumCI", "Name", "Email", "RegistrationDate"],
    SheetName.PRODUCTS.value: ["ProductID", "ProductName", "Cost"],
    SheetName.SALES.value: ["SaleID", "NumCI", "ClientName", "ProductID", "ProductName", "PurchaseDate", "Sold"],
}


@dataclass(frozen=True)
class ConfigSettings:
    """Typed representation of the ``config.ini`` settings we care about."""

    store_name: str
    log_level: str
    export_file: Path


def default_settings(base_path: Optional[Path] = None) -> ConfigSettings:
    """Settings used when no configuration file is available."""

    if base_path is None:
        base_path = Path.cwd()
    return ConfigSettings(
        store_name=DEFAULT_STORE_NAME,
        log_level=DEFAULT_LOG_LEVEL,
        export_file=(base_path / DEFAULT_EXPORT_FILE).resolve(),
    )


def find_config_file(explicit_path: Optional[Path] = None) -> Path:
    """Locate the configuration file.

    If the caller provides ``explicit_path`` the value is returned immediately
    without any verification. Otherwise the function walks up from the current
    working directory toward the filesystem root looking for a file named
    ``CONFIG_FILE_NAME`` and returns the first match.

    Args:
        explicit_path (Path | None): Optional path to use instead of performing
            the upward search.

    Returns:
        Path: The path provided by the caller or the discovered configuration
            file.

    Raises:
        FileNotFoundError: If the search exhausts all parent directories without
            finding ``CONFIG_FILE_NAME``.
    """

    if explicit_path:
        return explicit_path

    current = Path.cwd()
    for p in (current, *current.parents):
        candidate = p / CONFIG_FILE_NAME
        if candidate.exists():
            return candidate

    raise FileNotFoundError(f"Configuration file not found: {CONFIG_FILE_NAME}")


def read_config(config_path: Path) -> configparser.ConfigParser:
    """Load ``config.ini`` and return a populated ``ConfigParser`` instance.

    Raises:
        FileNotFoundError: If ``config_path`` does not exist after expansion and
            resolution.
        configparser.Error: If the file is not valid INI syntax.
    """

    config_path = Path(config_path).expanduser().resolve()
    if not config_path.exists():
        raise FileNotFoundError(f"Configuration file not found: {config_path}")

    parser = configparser.ConfigParser()
    parser.read(config_path, encoding="utf-8")
    return parser


def parse_settings(parser: configparser.ConfigParser, *, base_path: Optional[Path] = None) -> ConfigSettings:
    """Convert a ``ConfigParser`` into strongly typed :class:`ConfigSettings`.

    Every option is optional and falls back to the package defaults. A relative
    ``ExportFile`` is anchored at ``base_path`` (normally the directory holding
    the configuration file), or at the current working directory when omitted.

    Args:
        parser (configparser.ConfigParser): Parsed configuration data.
        base_path (Path | None): Directory used to resolve relative paths.

    Returns:
        ConfigSettings: Immutable settings container.

    Raises:
        KeyError: If ``LogLevel`` names a level the logging module does not
            know.
    """

    store_name = parser.get("System", "StoreName", fallback=DEFAULT_STORE_NAME).strip() or DEFAULT_STORE_NAME
    log_level = parser.get("System", "LogLevel", fallback=DEFAULT_LOG_LEVEL).strip().upper()
    export_raw = parser.get("Export", "ExportFile", fallback=DEFAULT_EXPORT_FILE).strip() or DEFAULT_EXPORT_FILE

    if not isinstance(logging.getLevelName(log_level), int):
        raise KeyError(f"Unknown log level in configuration: {log_level}")

    export_path = Path(export_raw).expanduser()
    if not export_path.is_absolute():
        if base_path is None:
            base_path = Path.cwd()
        export_path = (base_path / export_path).resolve()

    return ConfigSettings(store_name=store_name, log_level=log_level, export_file=export_path)


def serialize_client(record: Client) -> list[object]:
    """Arrange a client as ``[NumCI, Name, Email, RegistrationDate]``."""

    return [record.numci, record.name, record.email, record.registration_date]


def serialize_product(record: Product) -> list[object]:
    """Arrange a product as ``[ProductID, ProductName, Cost]``."""

    return [record.identifier, record.name, record.cost]


def serialize_sale(record: Sale) -> list[object]:
    """Arrange a sale in the ``Sales`` sheet column order.

    Client and product names are read from the shared references at export
    time, so they reflect the latest edits.
    """

    return [
        record.sale_id,
        record.client.numci,
        record.client.name,
        record.product.identifier,
        record.product.name,
        record.purchase_date,
        record.sold,
    ]


def build_workbook(
    clients: Iterable[Client],
    products: Iterable[Product],
    sales: Iterable[Sale],
    *,
    sheet_columns: Mapping[str, Sequence[str]] = SHEET_COLUMNS,
) -> Workbook:
    """Create an in-memory workbook with one sheet per record type.

    Header cells are written in bold, then one row is appended per record.
    """

    workbook = openpyxl.Workbook()

    # Remove the default sheet openpyxl generates so we can create ours.
    if workbook.active and workbook.active.title == "Sheet":
        workbook.remove(workbook.active)

    bold_font = Font(bold=True)
    for sheet_name, columns in sheet_columns.items():
        worksheet = workbook.create_sheet(title=sheet_name)
        for column_index, column_name in enumerate(columns, start=1):
            cell = worksheet.cell(row=1, column=column_index)
            cell.value = column_name
            cell.font = bold_font

    for client in clients:
        workbook[SheetName.CLIENTS.value].append(serialize_client(client))
    for product in products:
        workbook[SheetName.PRODUCTS.value].append(serialize_product(product))
    for sale in sales:
        workbook[SheetName.SALES.value].append(serialize_sale(sale))

    return workbook


def save_workbook(workbook: Workbook, destination: Path) -> Path:
    """Persist the workbook at ``destination``, creating parent folders.

    Returns:
        Path: The resolved destination.
    """

    dest = Path(destination).expanduser().resolve()
    dest.parent.mkdir(parents=True, exist_ok=True)
    workbook.save(dest)
    log.debug("Workbook written to '%s'", dest)
    return dest


__all__ = [
    "CONFIG_FILE_NAME",
    "SHEET_COLUMNS",
    "ConfigSettings",
    "default_settings",
    "find_config_file",
    "read_config",
    "parse_settings",
    "serialize_client",
    "serialize_product",
    "serialize_sale",
    "build_workbook",
    "save_workbook",
]
