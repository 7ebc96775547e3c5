"""Búsqueda, filtros y paginación sobre listas ya cargadas en memoria.

Funciones puras: no tocan la base de datos ni modifican la lista recibida.
Un filtro vacío (``None`` o ``""``) no restringe nada.
"""
import math
from typing import Any, Callable, Iterable, List, Optional, Sequence

from inventory_loans.core.config import settings
from inventory_loans.schemas.query import Page


def _is_empty(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def _value(value: Any) -> Any:
    # Los enums se comparan por su valor para aceptar tanto "overdue" como LoanStatus.OVERDUE
    return getattr(value, "value", value)


def matches_search(query: Optional[str], fields: Iterable[Any]) -> bool:
    """True si algún campo contiene la búsqueda (sin distinguir mayúsculas)"""
    if _is_empty(query):
        return True
    needle = query.strip().lower()
    return any(needle in str(field).lower() for field in fields if field is not None)


def filter_items(
    items: Sequence[Any],
    search: Optional[str] = None,
    category: Any = None,
    department: Any = None,
    status: Any = None,
    status_of: Optional[Callable[[Any], Any]] = None,
) -> List[Any]:
    """Filtrar bienes por texto libre, categoría, departamento (tipo) y estado.

    ``status_of`` calcula el estado derivado de cada bien; por defecto se usa
    el atributo ``status`` de los modelos de lectura.
    """
    status_of = status_of or (lambda item: item.status)
    result = []
    for item in items:
        if not matches_search(search, (item.name, item.barcode, item.description)):
            continue
        if not _is_empty(category) and item.category_id != category:
            continue
        if not _is_empty(department) and item.item_type_id != department:
            continue
        if not _is_empty(status) and _value(status_of(item)) != _value(status):
            continue
        result.append(item)
    return result


def filter_loans(
    loans: Sequence[Any],
    status_tab: Any = "all",
    search: Optional[str] = None,
    status_of: Optional[Callable[[Any], Any]] = None,
) -> List[Any]:
    """Filtrar préstamos por pestaña de estado y texto libre"""
    status_of = status_of or (lambda loan: loan.status)
    tab = _value(status_tab)
    result = []
    for loan in loans:
        if not _is_empty(tab) and tab != "all" and _value(status_of(loan)) != tab:
            continue
        fields = (
            loan.item_name,
            loan.item_barcode,
            loan.requester_name,
            loan.requester.national_id,
            loan.loan_number,
        )
        if not matches_search(search, fields):
            continue
        result.append(loan)
    return result


def filter_catalog(entities: Sequence[Any], search: Optional[str] = None) -> List[Any]:
    return [
        entity for entity in entities
        if matches_search(search, (entity.name, entity.code, entity.description))
    ]


def paginate(items: Sequence[Any], page: int, page_size: int) -> List[Any]:
    """Página 1-indexada. Fuera de rango devuelve una lista vacía, sin error."""
    if page < 1 or page_size < 1:
        return []
    start = (page - 1) * page_size
    return list(items[start:start + page_size])


def total_pages(count: int, page_size: int) -> int:
    if page_size < 1:
        return 1
    return max(1, math.ceil(count / page_size))


def build_page(items: Sequence[Any], page: int, page_size: Optional[int] = None) -> Page:
    page_size = page_size or settings.default_page_size
    return Page(
        items=paginate(items, page, page_size),
        page=page,
        page_size=page_size,
        total=len(items),
        total_pages=total_pages(len(items), page_size),
    )
