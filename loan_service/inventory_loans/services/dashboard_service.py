from collections import Counter
from typing import Optional
from sqlalchemy.orm import Session
from inventory_loans.core.clock import Clock, naive_clock, utcnow
from inventory_loans.core.config import Settings, settings as default_settings
from inventory_loans.models.enums import CatalogType, ItemStatus, LoanStatus
from inventory_loans.schemas.query import DashboardSummary
from inventory_loans.services.catalog_service import CatalogService
from inventory_loans.services.item_service import ItemService
from inventory_loans.services.loan_service import LoanService

class DashboardService:
    """Resumen de solo lectura para el panel principal"""

    def __init__(self, db: Session, clock: Clock = utcnow, settings: Optional[Settings] = None):
        self.db = db
        self.clock = naive_clock(clock)
        self.settings = settings or default_settings
        self.catalog = CatalogService(db)
        self.items = ItemService(db, self.clock, self.catalog)
        self.loans = LoanService(db, self.clock, catalog=self.catalog, settings=self.settings)

    def summary(self) -> DashboardSummary:
        items = self.items.list_with_status()
        loans = self.loans.list_loans()

        category_names = {
            entity.id: entity.name
            for entity in self.catalog.list(CatalogType.CATEGORY, include_inactive=True)
        }
        by_status = Counter(item.status.value for item in items)
        by_loan_status = Counter(loan.status.value for loan in loans)

        return DashboardSummary(
            total_items=len(items),
            total_units=sum(item.quantity_on_hand for item in items),
            items_by_status={status.value: by_status.get(status.value, 0) for status in ItemStatus},
            items_by_category=dict(Counter(
                category_names.get(item.category_id, str(item.category_id)) for item in items
            )),
            loans_by_status={status.value: by_loan_status.get(status.value, 0) for status in LoanStatus},
            overdue_loans=[loan for loan in loans if loan.status == LoanStatus.OVERDUE],
            low_stock_items=[
                item for item in items
                if item.available_units <= self.settings.low_stock_threshold
            ],
        )
