from pydantic import BaseModel, Field, field_validator
from typing import Optional
from datetime import datetime
from inventory_loans.models.enums import ItemStatus

class ItemBase(BaseModel):
    barcode: str = Field(..., min_length=1, max_length=50, description="Código de barras único del bien")
    name: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = Field(None, max_length=500)
    quantity_on_hand: int = Field(..., ge=0)
    cost: float = Field(0.0, ge=0)
    image_ref: Optional[str] = Field(None, max_length=300)
    category_id: int
    item_type_id: int
    location_id: Optional[int] = None
    material_id: Optional[int] = None
    color_id: Optional[int] = None
    condition_id: Optional[int] = None
    state_id: Optional[int] = None

    @field_validator("barcode", "name")
    @classmethod
    def strip_required_text(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("must not be blank")
        return value

class ItemCreate(ItemBase):
    pass

class ItemUpdate(BaseModel):
    # barcode solo se admite para detectar intentos de cambiarlo
    barcode: Optional[str] = Field(None, max_length=50)
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = Field(None, max_length=500)
    quantity_on_hand: Optional[int] = Field(None, ge=0)
    cost: Optional[float] = Field(None, ge=0)
    image_ref: Optional[str] = Field(None, max_length=300)
    category_id: Optional[int] = None
    item_type_id: Optional[int] = None
    location_id: Optional[int] = None
    material_id: Optional[int] = None
    color_id: Optional[int] = None
    condition_id: Optional[int] = None
    state_id: Optional[int] = None

class ItemResponse(ItemBase):
    id: int
    active: bool
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True

class ItemRead(ItemResponse):
    """Bien con los campos derivados calculados al momento de leer"""
    status: ItemStatus
    outstanding_loans: int
    available_units: int

class ItemFilter(BaseModel):
    search: Optional[str] = None
    category: Optional[int] = None
    department: Optional[int] = None
    status: Optional[ItemStatus] = None
    include_inactive: bool = False
