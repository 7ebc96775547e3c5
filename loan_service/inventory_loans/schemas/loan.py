from pydantic import BaseModel, EmailStr, Field, field_validator
from typing import Optional, Union, Literal
from datetime import datetime
from inventory_loans.models.enums import LoanStatus, RequesterRole

class RequesterSnapshot(BaseModel):
    """Datos del solicitante copiados al momento de pedir el préstamo"""
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field("", max_length=100)
    email: Optional[EmailStr] = None
    phone: Optional[str] = Field(None, max_length=30)
    role: RequesterRole
    national_id: str = Field(..., min_length=1, max_length=30, description="Cédula")

    @field_validator("first_name", "last_name", "national_id")
    @classmethod
    def strip_text(cls, value: str) -> str:
        return value.strip()

    @field_validator("first_name", "national_id")
    @classmethod
    def required_not_blank(cls, value: str) -> str:
        if not value:
            raise ValueError("must not be blank")
        return value

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

class LoanRequest(BaseModel):
    item_id: int
    requester: RequesterSnapshot
    start_at: Optional[datetime] = None
    due_at: Optional[datetime] = None
    purpose: Optional[str] = None
    event: Optional[str] = Field(None, max_length=200)
    usage_location: Optional[str] = Field(None, max_length=200)
    notes: Optional[str] = None
    accepted_terms: bool = True

class LoanReturn(BaseModel):
    returned_at: Optional[datetime] = None
    condition_id: Optional[int] = None
    notes: Optional[str] = None

class LoanRead(BaseModel):
    id: int
    loan_number: str
    item_id: int
    item_name: str
    item_barcode: str
    requester: RequesterSnapshot
    requester_name: str
    purpose: Optional[str] = None
    event: Optional[str] = None
    usage_location: Optional[str] = None
    notes: Optional[str] = None
    requested_at: datetime
    start_at: datetime
    due_at: datetime
    returned_at: Optional[datetime] = None
    return_condition_id: Optional[int] = None
    return_notes: Optional[str] = None
    status: LoanStatus
    days_overdue: int = 0

class LoanFilter(BaseModel):
    status_tab: Union[Literal["all"], LoanStatus] = "all"
    search: Optional[str] = None
    item_id: Optional[int] = None
