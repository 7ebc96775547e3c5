from .catalog import (
    CatalogEntityBase,
    CatalogEntityCreate,
    CatalogEntityUpdate,
    CatalogEntityResponse,
    DeactivationResult
)
from .item import (
    ItemBase,
    ItemCreate,
    ItemUpdate,
    ItemResponse,
    ItemRead,
    ItemFilter
)
from .loan import (
    RequesterSnapshot,
    LoanRequest,
    LoanReturn,
    LoanRead,
    LoanFilter
)
from .deny_list import (
    DenyListEntryCreate
)
from .query import Page, DashboardSummary

__all__ = [
    "CatalogEntityBase",
    "CatalogEntityCreate",
    "CatalogEntityUpdate",
    "CatalogEntityResponse",
    "DeactivationResult",
    "ItemBase",
    "ItemCreate",
    "ItemUpdate",
    "ItemResponse",
    "ItemRead",
    "ItemFilter",
    "RequesterSnapshot",
    "LoanRequest",
    "LoanReturn",
    "LoanRead",
    "LoanFilter",
    "DenyListEntryCreate",
    "Page",
    "DashboardSummary"
]
