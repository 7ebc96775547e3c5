import logging
from typing import List, Optional
from sqlalchemy.orm import Session
from inventory_loans.core.clock import Clock, as_utc_naive, naive_clock, utcnow
from inventory_loans.core.errors import NotFoundError, ValidationError
from inventory_loans.models.enums import CatalogType, ItemStatus
from inventory_loans.models.item import Item
from inventory_loans.models.loan import Loan
from inventory_loans.schemas.item import (
    ItemCreate,
    ItemFilter,
    ItemRead,
    ItemResponse,
    ItemUpdate,
)
from inventory_loans.services.catalog_service import CatalogService
from inventory_loans.services.query_service import filter_items
from inventory_loans.services.utils import parse_payload

logger = logging.getLogger(__name__)

# Campo del bien -> tipo de catálogo al que debe apuntar
ITEM_REFERENCES = {
    "category_id": CatalogType.CATEGORY,
    "item_type_id": CatalogType.ITEM_TYPE,
    "location_id": CatalogType.LOCATION,
    "material_id": CatalogType.MATERIAL,
    "color_id": CatalogType.COLOR,
    "condition_id": CatalogType.CONDITION,
    "state_id": CatalogType.STATE,
}

REQUIRED_REFERENCES = ("category_id", "item_type_id")


def derive_item_status(item: Item, outstanding_loans: int) -> ItemStatus:
    """Estado derivado de un bien.

    La marca administrativa del estado o de la condición siempre gana sobre
    lo que digan los préstamos. Sin ella, el bien está en uso cuando los
    préstamos pendientes cubren todas las unidades.
    """
    if item.state is not None and item.state.requires_maintenance:
        return ItemStatus.MAINTENANCE
    if item.condition is not None and item.condition.requires_maintenance:
        return ItemStatus.DAMAGED
    if outstanding_loans >= item.quantity_on_hand:
        return ItemStatus.IN_USE
    return ItemStatus.AVAILABLE


class ItemService:
    """Registro de bienes con estado y disponibilidad derivados"""

    def __init__(self, db: Session, clock: Clock = utcnow, catalog: Optional[CatalogService] = None):
        self.db = db
        self.clock = naive_clock(clock)
        self.catalog = catalog or CatalogService(db)

    def get(self, item_id: int) -> Item:
        """Obtener un bien por id"""
        item = self.db.get(Item, item_id)
        if item is None:
            raise NotFoundError(f"Item {item_id} not found", {"id": item_id})
        return item

    def get_by_barcode(self, barcode: str) -> Item:
        """Obtener un bien por su código de barras"""
        item = self.db.query(Item).filter(Item.barcode == barcode.strip()).first()
        if item is None:
            raise NotFoundError(f"Item with barcode {barcode} not found", {"barcode": barcode})
        return item

    def get_all_items(self, include_inactive: bool = False) -> List[Item]:
        """Obtener todos los bienes del inventario"""
        query = self.db.query(Item)
        if not include_inactive:
            query = query.filter(Item.active.is_(True))
        return query.order_by(Item.name).all()

    def create(self, item_data) -> Item:
        """Registrar un nuevo bien"""
        payload = parse_payload(ItemCreate, item_data)

        existing = self.db.query(Item).filter(Item.barcode == payload.barcode).first()
        if existing:
            raise ValidationError(
                f"Barcode {payload.barcode} is already assigned",
                {"field": "barcode", "existing_id": existing.id},
            )

        values = payload.model_dump()
        self._resolve_references(values)

        item = Item(active=True, **values)
        self.db.add(item)
        self.db.commit()
        self.db.refresh(item)
        logger.info(
            "[INVENTORY] Created item %s (%s) with %s units",
            item.id, item.barcode, item.quantity_on_hand,
        )
        return item

    def update(self, item_id: int, patch) -> Item:
        """Actualizar un bien. El código de barras no se puede cambiar."""
        item = self.get(item_id)
        changes = parse_payload(ItemUpdate, patch).model_dump(exclude_unset=True)

        barcode = changes.pop("barcode", None)
        if barcode is not None and barcode.strip() != item.barcode:
            raise ValidationError("Barcode is immutable once assigned", {"field": "barcode"})

        for field in REQUIRED_REFERENCES + ("name", "quantity_on_hand", "cost"):
            if field in changes and changes[field] is None:
                raise ValidationError(f"{field} is required", {"field": field})
        if "name" in changes:
            changes["name"] = changes["name"].strip()
            if not changes["name"]:
                raise ValidationError("name is required", {"field": "name"})

        self._resolve_references(changes)

        for field, value in changes.items():
            setattr(item, field, value)

        self.db.commit()
        self.db.refresh(item)
        logger.info("[INVENTORY] Updated item %s", item.id)
        return item

    def deactivate(self, item_id: int) -> Item:
        """Baja lógica: los bienes con préstamos nunca se borran"""
        item = self.get(item_id)
        if item.active:
            item.active = False
            self.db.commit()
            self.db.refresh(item)
            logger.info("[INVENTORY] Deactivated item %s", item.id)
        return item

    def outstanding_loans(self, item_id: int, now=None) -> int:
        """Préstamos activos o vencidos (iniciados y sin devolver) en este momento"""
        now = as_utc_naive(now) or self.clock()
        return self.db.query(Loan).filter(
            Loan.item_id == item_id,
            Loan.returned_at.is_(None),
            Loan.start_at <= now,
        ).count()

    def available_units(self, item_id: int) -> int:
        item = self.get(item_id)
        return max(item.quantity_on_hand - self.outstanding_loans(item.id), 0)

    def get_status(self, item_id: int) -> ItemStatus:
        """Calcular (no leer) el estado del bien"""
        item = self.get(item_id)
        return derive_item_status(item, self.outstanding_loans(item.id))

    def to_read(self, item: Item, now=None) -> ItemRead:
        now = as_utc_naive(now) or self.clock()
        outstanding = self.outstanding_loans(item.id, now)
        return ItemRead(
            **ItemResponse.model_validate(item).model_dump(),
            status=derive_item_status(item, outstanding),
            outstanding_loans=outstanding,
            available_units=max(item.quantity_on_hand - outstanding, 0),
        )

    def list_with_status(self, item_filter=None) -> List[ItemRead]:
        """Listar bienes con estado derivado, aplicando búsqueda y filtros"""
        item_filter = parse_payload(ItemFilter, item_filter or {})
        now = self.clock()
        items = [self.to_read(item, now) for item in self.get_all_items(item_filter.include_inactive)]
        return filter_items(
            items,
            search=item_filter.search,
            category=item_filter.category,
            department=item_filter.department,
            status=item_filter.status,
        )

    def _resolve_references(self, values: dict):
        for field, entity_type in ITEM_REFERENCES.items():
            if values.get(field) is not None:
                self.catalog.resolve(entity_type, values[field], field=field)
