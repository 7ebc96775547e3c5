from sqlalchemy import Column, Integer, String, Boolean, DateTime, ForeignKey
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from .base import Base

class CatalogEntity(Base):
    """Registro de catálogo: categoría, color, condición, tipo, ubicación,
    almacén, material o estado. Todos comparten la misma tabla."""
    __tablename__ = "catalog_entities"

    id = Column(Integer, primary_key=True, index=True)
    entity_type = Column(String(20), index=True, nullable=False)
    code = Column(String(50), index=True)
    name = Column(String(150), nullable=False)
    description = Column(String(500))
    active = Column(Boolean, default=True, nullable=False)

    # Jerarquía (solo categorías y ubicaciones)
    parent_id = Column(Integer, ForeignKey("catalog_entities.id"), nullable=True)

    # Estados y condiciones que sacan el bien de circulación
    requires_maintenance = Column(Boolean, default=False, nullable=False)

    # Ubicaciones
    warehouse_id = Column(Integer, ForeignKey("catalog_entities.id"), nullable=True)
    location_type = Column(String(50))
    building = Column(String(100))
    floor = Column(String(50))
    capacity = Column(Integer)
    occupancy = Column(Integer)
    qr_code = Column(String(100))

    # Almacenes
    address = Column(String(300))
    responsible = Column(String(150))

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    parent = relationship("CatalogEntity", remote_side=[id], foreign_keys=[parent_id])

    def __repr__(self):
        return f"<CatalogEntity(type='{self.entity_type}', name='{self.name}')>"
