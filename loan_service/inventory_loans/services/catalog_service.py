import logging
from typing import List, Optional
from sqlalchemy import func, or_
from sqlalchemy.orm import Session
from inventory_loans.core.errors import (
    CycleError,
    InvalidReferenceError,
    NotFoundError,
    ValidationError,
)
from inventory_loans.models.catalog import CatalogEntity
from inventory_loans.models.enums import CatalogType, HIERARCHICAL_TYPES
from inventory_loans.models.item import Item
from inventory_loans.models.loan import Loan
from inventory_loans.schemas.catalog import (
    CatalogEntityCreate,
    CatalogEntityResponse,
    CatalogEntityUpdate,
    DeactivationResult,
)
from inventory_loans.services.utils import parse_catalog_type, parse_payload

logger = logging.getLogger(__name__)

# Columnas de Item que apuntan al catálogo
ITEM_REFERENCE_COLUMNS = (
    Item.category_id,
    Item.item_type_id,
    Item.location_id,
    Item.material_id,
    Item.color_id,
    Item.condition_id,
    Item.state_id,
)

class CatalogService:
    """Almacén de entidades de catálogo (categorías, colores, ubicaciones, ...)"""

    def __init__(self, db: Session):
        self.db = db

    def get(self, entity_type, entity_id: int) -> CatalogEntity:
        """Obtener una entidad por tipo e id (activa o no)"""
        entity_type = parse_catalog_type(entity_type)
        entity = self.db.get(CatalogEntity, entity_id)
        if entity is None or entity.entity_type != entity_type.value:
            raise NotFoundError(
                f"{entity_type.value} {entity_id} not found",
                {"entity_type": entity_type.value, "id": entity_id},
            )
        return entity

    def list(self, entity_type, include_inactive: bool = False) -> List[CatalogEntity]:
        """Listar entidades de un tipo, ordenadas por nombre"""
        entity_type = parse_catalog_type(entity_type)
        query = self.db.query(CatalogEntity).filter(CatalogEntity.entity_type == entity_type.value)
        if not include_inactive:
            query = query.filter(CatalogEntity.active.is_(True))
        return query.order_by(CatalogEntity.name).all()

    def resolve(self, entity_type, entity_id: int, field: str = None) -> CatalogEntity:
        """Resolver una referencia: debe existir, ser del tipo correcto y estar activa"""
        entity_type = parse_catalog_type(entity_type)
        entity = self.db.get(CatalogEntity, entity_id)
        if entity is None or entity.entity_type != entity_type.value or not entity.active:
            raise InvalidReferenceError(
                f"{field or entity_type.value} does not reference an active {entity_type.value}",
                {"field": field, "entity_type": entity_type.value, "id": entity_id},
            )
        return entity

    def ancestors(self, entity_type, entity_id: int) -> List[CatalogEntity]:
        """Cadena de padres desde la raíz hasta el padre directo"""
        entity = self.get(entity_type, entity_id)
        chain = []
        seen = {entity.id}
        current = entity.parent
        while current is not None:
            if current.id in seen:
                raise CycleError(
                    f"Hierarchy of {entity.entity_type} {entity.id} contains a cycle",
                    {"id": entity.id, "repeated": current.id},
                )
            seen.add(current.id)
            chain.append(current)
            current = current.parent
        chain.reverse()
        return chain

    def create(self, entity_type, data) -> CatalogEntity:
        """Crear una entidad de catálogo"""
        entity_type = parse_catalog_type(entity_type)
        payload = parse_payload(CatalogEntityCreate, data)

        self._ensure_unique(entity_type, payload.name, payload.code)
        self._check_type_specific_fields(entity_type, payload.model_dump(exclude_unset=True))
        self._check_parent(entity_type, None, payload.parent_id)
        self._check_warehouse(entity_type, payload.warehouse_id)

        entity = CatalogEntity(entity_type=entity_type.value, active=True, **payload.model_dump())
        self.db.add(entity)
        self.db.commit()
        self.db.refresh(entity)
        logger.info("[CATALOG] Created %s %s (%s)", entity_type.value, entity.id, entity.name)
        return entity

    def update(self, entity_type, entity_id: int, data) -> CatalogEntity:
        """Actualizar parcialmente una entidad de catálogo"""
        entity_type = parse_catalog_type(entity_type)
        entity = self.get(entity_type, entity_id)
        patch = parse_payload(CatalogEntityUpdate, data).model_dump(exclude_unset=True)

        if "name" in patch and patch["name"] is None:
            raise ValidationError("name is required", {"field": "name"})
        self._check_type_specific_fields(entity_type, patch)

        name = patch.get("name", entity.name)
        code = patch.get("code", entity.code)
        if entity.active and (name != entity.name or code != entity.code):
            self._ensure_unique(entity_type, name, code, exclude_id=entity.id)

        capacity = patch.get("capacity", entity.capacity)
        occupancy = patch.get("occupancy", entity.occupancy)
        if capacity is not None and occupancy is not None and occupancy > capacity:
            raise ValidationError(
                "occupancy cannot exceed capacity",
                {"capacity": capacity, "occupancy": occupancy},
            )

        if "parent_id" in patch and patch["parent_id"] != entity.parent_id:
            self._check_parent(entity_type, entity.id, patch["parent_id"])
        if "warehouse_id" in patch and patch["warehouse_id"] != entity.warehouse_id:
            self._check_warehouse(entity_type, patch["warehouse_id"])

        for field, value in patch.items():
            setattr(entity, field, value)

        self.db.commit()
        self.db.refresh(entity)
        logger.info("[CATALOG] Updated %s %s", entity_type.value, entity.id)
        return entity

    def deactivate(self, entity_type, entity_id: int) -> DeactivationResult:
        """Desactivar (baja lógica). Idempotente y sin cascada.

        Si la entidad sigue referenciada por bienes activos, por entidades
        hijas activas o por préstamos registrados, la baja se aplica igual y se
        informa en el resultado.
        """
        entity_type = parse_catalog_type(entity_type)
        entity = self.get(entity_type, entity_id)

        if entity.active:
            entity.active = False
            self.db.commit()
            self.db.refresh(entity)
            logger.info("[CATALOG] Deactivated %s %s", entity_type.value, entity.id)

        items = self._count_referencing_items(entity.id)
        children = self._count_referencing_children(entity.id)
        loans = self._count_referencing_loans(entity.id)
        if items or children or loans:
            logger.warning(
                "[CATALOG] %s %s is inactive but still referenced by %s items, %s children and %s loans",
                entity_type.value, entity.id, items, children, loans,
            )
        return DeactivationResult(
            entity=CatalogEntityResponse.model_validate(entity),
            still_referenced=bool(items or children or loans),
            referencing_items=items,
            referencing_children=children,
            referencing_loans=loans,
        )

    def reactivate(self, entity_type, entity_id: int) -> CatalogEntity:
        """Reactivar una entidad, verificando que no choque con otra activa"""
        entity_type = parse_catalog_type(entity_type)
        entity = self.get(entity_type, entity_id)
        if entity.active:
            return entity
        self._ensure_unique(entity_type, entity.name, entity.code, exclude_id=entity.id)
        entity.active = True
        self.db.commit()
        self.db.refresh(entity)
        logger.info("[CATALOG] Reactivated %s %s", entity_type.value, entity.id)
        return entity

    def _ensure_unique(self, entity_type: CatalogType, name: str, code: Optional[str], exclude_id: int = None):
        conditions = [func.lower(CatalogEntity.name) == name.lower()]
        if code:
            conditions.append(func.lower(CatalogEntity.code) == code.lower())
        query = self.db.query(CatalogEntity).filter(
            CatalogEntity.entity_type == entity_type.value,
            CatalogEntity.active.is_(True),
            or_(*conditions),
        )
        if exclude_id is not None:
            query = query.filter(CatalogEntity.id != exclude_id)
        clash = query.first()
        if clash is None:
            return
        field = "name" if clash.name.lower() == name.lower() else "code"
        raise ValidationError(
            f"An active {entity_type.value} with the same {field} already exists",
            {"field": field, "existing_id": clash.id},
        )

    def _check_type_specific_fields(self, entity_type: CatalogType, values: dict):
        if values.get("parent_id") is not None and entity_type not in HIERARCHICAL_TYPES:
            raise ValidationError(f"{entity_type.value} does not support a parent", {"field": "parent_id"})
        if values.get("warehouse_id") is not None and entity_type != CatalogType.LOCATION:
            raise ValidationError(f"{entity_type.value} does not belong to a warehouse", {"field": "warehouse_id"})

    def _check_parent(self, entity_type: CatalogType, entity_id: Optional[int], parent_id: Optional[int]):
        """El padre debe existir, estar activo y no crear un ciclo"""
        if parent_id is None:
            return
        if entity_id is not None and parent_id == entity_id:
            raise CycleError(
                f"{entity_type.value} {entity_id} cannot be its own parent",
                {"id": entity_id, "parent_id": parent_id},
            )
        current = self.resolve(entity_type, parent_id, field="parent_id")
        seen = set()
        while current is not None:
            if current.id == entity_id or current.id in seen:
                raise CycleError(
                    f"Setting parent {parent_id} on {entity_type.value} {entity_id} would create a cycle",
                    {"id": entity_id, "parent_id": parent_id},
                )
            seen.add(current.id)
            current = current.parent

    def _check_warehouse(self, entity_type: CatalogType, warehouse_id: Optional[int]):
        if warehouse_id is None:
            return
        self.resolve(CatalogType.WAREHOUSE, warehouse_id, field="warehouse_id")

    def _count_referencing_items(self, entity_id: int) -> int:
        return self.db.query(Item).filter(
            Item.active.is_(True),
            or_(*[column == entity_id for column in ITEM_REFERENCE_COLUMNS]),
        ).count()

    def _count_referencing_children(self, entity_id: int) -> int:
        return self.db.query(CatalogEntity).filter(
            CatalogEntity.active.is_(True),
            or_(CatalogEntity.parent_id == entity_id, CatalogEntity.warehouse_id == entity_id),
        ).count()

    def _count_referencing_loans(self, entity_id: int) -> int:
        return self.db.query(Loan).filter(Loan.return_condition_id == entity_id).count()
