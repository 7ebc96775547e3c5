from pydantic import BaseModel, Field, field_validator, model_validator
from typing import Optional
from datetime import datetime
from inventory_loans.models.enums import CatalogType

class CatalogEntityBase(BaseModel):
    code: Optional[str] = Field(None, max_length=50)
    name: str = Field(..., min_length=1, max_length=150)
    description: Optional[str] = Field(None, max_length=500)
    parent_id: Optional[int] = None
    requires_maintenance: bool = False
    warehouse_id: Optional[int] = None
    location_type: Optional[str] = Field(None, max_length=50)
    building: Optional[str] = Field(None, max_length=100)
    floor: Optional[str] = Field(None, max_length=50)
    capacity: Optional[int] = Field(None, ge=0)
    occupancy: Optional[int] = Field(None, ge=0)
    qr_code: Optional[str] = Field(None, max_length=100)
    address: Optional[str] = Field(None, max_length=300)
    responsible: Optional[str] = Field(None, max_length=150)

    @field_validator("name")
    @classmethod
    def name_not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("name must not be blank")
        return value

    @field_validator("code")
    @classmethod
    def blank_code_is_none(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        return value.strip() or None

    @model_validator(mode="after")
    def occupancy_within_capacity(self):
        if self.capacity is not None and self.occupancy is not None and self.occupancy > self.capacity:
            raise ValueError("occupancy cannot exceed capacity")
        return self

class CatalogEntityCreate(CatalogEntityBase):
    pass

class CatalogEntityUpdate(BaseModel):
    code: Optional[str] = Field(None, max_length=50)
    name: Optional[str] = Field(None, min_length=1, max_length=150)
    description: Optional[str] = Field(None, max_length=500)
    parent_id: Optional[int] = None
    requires_maintenance: Optional[bool] = None
    warehouse_id: Optional[int] = None
    location_type: Optional[str] = Field(None, max_length=50)
    building: Optional[str] = Field(None, max_length=100)
    floor: Optional[str] = Field(None, max_length=50)
    capacity: Optional[int] = Field(None, ge=0)
    occupancy: Optional[int] = Field(None, ge=0)
    qr_code: Optional[str] = Field(None, max_length=100)
    address: Optional[str] = Field(None, max_length=300)
    responsible: Optional[str] = Field(None, max_length=150)

    @field_validator("name")
    @classmethod
    def name_not_blank(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        value = value.strip()
        if not value:
            raise ValueError("name must not be blank")
        return value

    @field_validator("code")
    @classmethod
    def blank_code_is_none(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        return value.strip() or None

class CatalogEntityResponse(CatalogEntityBase):
    id: int
    entity_type: CatalogType
    active: bool
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True

class DeactivationResult(BaseModel):
    entity: CatalogEntityResponse
    still_referenced: bool
    referencing_items: int = 0
    referencing_children: int = 0
    referencing_loans: int = 0
