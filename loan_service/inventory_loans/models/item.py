from sqlalchemy import Column, Integer, String, Float, Boolean, DateTime, ForeignKey
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from .base import Base

class Item(Base):
    """Bien inventariable y prestable. El estado no se guarda: se deriva."""
    __tablename__ = "items"

    id = Column(Integer, primary_key=True, index=True)
    barcode = Column(String(50), unique=True, index=True, nullable=False)
    name = Column(String(200), nullable=False)
    description = Column(String(500))
    quantity_on_hand = Column(Integer, default=0, nullable=False)
    cost = Column(Float, default=0.0, nullable=False)
    image_ref = Column(String(300))
    active = Column(Boolean, default=True, nullable=False)

    category_id = Column(Integer, ForeignKey("catalog_entities.id"), nullable=False)
    item_type_id = Column(Integer, ForeignKey("catalog_entities.id"), nullable=False)
    location_id = Column(Integer, ForeignKey("catalog_entities.id"))
    material_id = Column(Integer, ForeignKey("catalog_entities.id"))
    color_id = Column(Integer, ForeignKey("catalog_entities.id"))
    condition_id = Column(Integer, ForeignKey("catalog_entities.id"))
    state_id = Column(Integer, ForeignKey("catalog_entities.id"))

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    category = relationship("CatalogEntity", foreign_keys=[category_id])
    item_type = relationship("CatalogEntity", foreign_keys=[item_type_id])
    condition = relationship("CatalogEntity", foreign_keys=[condition_id])
    state = relationship("CatalogEntity", foreign_keys=[state_id])
    loans = relationship("Loan", back_populates="item")

    def __repr__(self):
        return f"<Item(barcode='{self.barcode}', name='{self.name}')>"
