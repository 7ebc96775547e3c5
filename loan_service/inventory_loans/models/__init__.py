from .base import Base
from .enums import CatalogType, ItemStatus, LoanStatus, RequesterRole
from .catalog import CatalogEntity
from .item import Item
from .loan import Loan
from .deny_list import DenyListEntry

__all__ = [
    "Base",
    "CatalogType",
    "ItemStatus",
    "LoanStatus",
    "RequesterRole",
    "CatalogEntity",
    "Item",
    "Loan",
    "DenyListEntry",
]
