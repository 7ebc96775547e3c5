from pydantic import BaseModel
from typing import Any, Dict, List

class Page(BaseModel):
    items: List[Any]
    page: int
    page_size: int
    total: int
    total_pages: int

class DashboardSummary(BaseModel):
    total_items: int
    total_units: int
    items_by_status: Dict[str, int]
    items_by_category: Dict[str, int]
    loans_by_status: Dict[str, int]
    overdue_loans: List[Any]
    low_stock_items: List[Any]
