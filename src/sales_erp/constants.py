"""Enumerations and patterns shared across Sales ERP modules.

Centralises domain constants so that the entity layer, the stores, the
business logic layer (BLL) and the interactive shell rely on a single source
of truth for identifiers and validation patterns.
"""

from __future__ import annotations

import re
from enum import Enum


# Validation patterns applied by the entity setters.
EMAIL_PATTERN = re.compile(r"[\w._%+-]+@[\w.-]+\.[A-Za-z]{2,4}", re.ASCII)
NUMCI_PATTERN = re.compile(r"[0-9]+")

DEFAULT_STORE_NAME = "Sales ERP"
DEFAULT_LOG_LEVEL = "INFO"
DEFAULT_EXPORT_FILE = "sales_snapshot.xlsx"


class EntityName(str, Enum):
    """Enumerate the record types managed by the stores."""

    CLIENT = "Client"
    PRODUCT = "Product"
    SALE = "Sale"


class FailureReason(str, Enum):
    """Enumerate why an orchestration call produced no result."""

    INVALID_INPUT = "INVALID_INPUT"
    NOT_FOUND = "NOT_FOUND"
    VALIDATION = "VALIDATION"
    EXPORT_FAILED = "EXPORT_FAILED"


class SaleStatus(str, Enum):
    """Display labels for the sold flag of a sale."""

    SOLD = "Sold"
    PENDING = "Pending"


class SheetName(str, Enum):
    """Enumerate the worksheet names written by the snapshot export."""

    CLIENTS = "Clients"
    PRODUCTS = "Products"
    SALES = "Sales"


__all__ = [
    "EMAIL_PATTERN",
    "NUMCI_PATTERN",
    "DEFAULT_STORE_NAME",
    "DEFAULT_LOG_LEVEL",
    "DEFAULT_EXPORT_FILE",
    "EntityName",
    "FailureReason",
    "SaleStatus",
    "SheetName",
]
