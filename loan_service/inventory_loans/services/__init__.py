from .catalog_service import CatalogService
from .item_service import ItemService, derive_item_status
from .loan_service import LoanService, derive_loan_status, overlaps
from .deny_list_service import DenyListService
from .dashboard_service import DashboardService
from .query_service import (
    filter_items,
    filter_loans,
    filter_catalog,
    paginate,
    total_pages,
    build_page
)

__all__ = [
    "CatalogService",
    "ItemService",
    "LoanService",
    "DenyListService",
    "DashboardService",
    "derive_item_status",
    "derive_loan_status",
    "overlaps",
    "filter_items",
    "filter_loans",
    "filter_catalog",
    "paginate",
    "total_pages",
    "build_page"
]
