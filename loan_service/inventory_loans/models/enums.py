from enum import Enum


class CatalogType(str, Enum):
    CATEGORY = "category"
    COLOR = "color"
    CONDITION = "condition"
    ITEM_TYPE = "item_type"
    LOCATION = "location"
    WAREHOUSE = "warehouse"
    MATERIAL = "material"
    STATE = "state"


# Tipos de catálogo que forman jerarquía (padre/hijo)
HIERARCHICAL_TYPES = frozenset({CatalogType.CATEGORY, CatalogType.LOCATION})


class ItemStatus(str, Enum):
    AVAILABLE = "available"
    IN_USE = "in_use"
    MAINTENANCE = "maintenance"
    DAMAGED = "damaged"


class LoanStatus(str, Enum):
    ACTIVE = "active"
    OVERDUE = "overdue"
    RETURNED = "returned"


class RequesterRole(str, Enum):
    STUDENT = "student"
    TEACHER = "teacher"
    ADMINISTRATIVE = "administrative"
