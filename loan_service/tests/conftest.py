from datetime import datetime, timedelta

import pytest
from sqlalchemy.orm import sessionmaker

from inventory_loans.core.config import Settings
from inventory_loans.db import build_engine, create_tables
from inventory_loans.models.enums import CatalogType, RequesterRole
from inventory_loans.services import (
    CatalogService,
    DenyListService,
    ItemService,
    LoanService,
)


class FrozenClock:
    """Reloj controlable para fijar "ahora" en las pruebas"""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def set(self, now: datetime):
        self.now = now

    def advance(self, **kwargs):
        self.now = self.now + timedelta(**kwargs)


@pytest.fixture
def db():
    engine = build_engine("sqlite://")
    create_tables(engine)
    session = sessionmaker(autocommit=False, autoflush=False, bind=engine)()
    try:
        yield session
    finally:
        session.close()
        engine.dispose()


@pytest.fixture
def clock():
    return FrozenClock(datetime(2024, 3, 30, 9, 0))


@pytest.fixture
def settings():
    return Settings(default_loan_days=7, max_loan_days=90, low_stock_threshold=1)


@pytest.fixture
def catalog(db):
    return CatalogService(db)


@pytest.fixture
def deny_list(db, clock):
    return DenyListService(db, clock)


@pytest.fixture
def items(db, clock, catalog):
    return ItemService(db, clock, catalog)


@pytest.fixture
def loans(db, clock, deny_list, catalog, settings):
    return LoanService(db, clock, deny_list=deny_list, catalog=catalog, settings=settings)


@pytest.fixture
def refs(catalog):
    """Entidades de catálogo mínimas para registrar bienes"""
    warehouse = catalog.create(CatalogType.WAREHOUSE, {"name": "Almacén Central", "code": "ALM-01"})
    return {
        "technology": catalog.create(CatalogType.CATEGORY, {"name": "Tecnología", "code": "TEC"}),
        "furniture": catalog.create(CatalogType.CATEGORY, {"name": "Mobiliario", "code": "MOB"}),
        "computing": catalog.create(CatalogType.ITEM_TYPE, {"name": "Computación"}),
        "electronics": catalog.create(CatalogType.ITEM_TYPE, {"name": "Electrónica"}),
        "good": catalog.create(CatalogType.CONDITION, {"name": "Bueno"}),
        "broken": catalog.create(CatalogType.CONDITION, {"name": "Dañado", "requires_maintenance": True}),
        "operative": catalog.create(CatalogType.STATE, {"name": "Operativo"}),
        "repair": catalog.create(CatalogType.STATE, {"name": "En reparación", "requires_maintenance": True}),
        "warehouse": warehouse,
        "lab": catalog.create(CatalogType.LOCATION, {"name": "Laboratorio 1", "warehouse_id": warehouse.id}),
        "black": catalog.create(CatalogType.COLOR, {"name": "Negro"}),
        "aluminium": catalog.create(CatalogType.MATERIAL, {"name": "Aluminio"}),
    }


@pytest.fixture
def make_item(items, refs):
    counter = {"n": 0}

    def _make(quantity=1, **overrides):
        counter["n"] += 1
        data = {
            "barcode": f"TEC-{counter['n']:03d}",
            "name": f"Bien {counter['n']}",
            "description": "Equipo de laboratorio",
            "quantity_on_hand": quantity,
            "cost": 100.0,
            "category_id": refs["technology"].id,
            "item_type_id": refs["computing"].id,
            "state_id": refs["operative"].id,
            "condition_id": refs["good"].id,
        }
        data.update(overrides)
        return items.create(data)

    return _make


@pytest.fixture
def requester():
    return {
        "first_name": "Carlos",
        "last_name": "Méndez",
        "email": "cmendez@universidad.edu",
        "phone": "0991234567",
        "role": RequesterRole.STUDENT,
        "national_id": "0102030405",
    }
