from pydantic import BaseModel, Field, model_validator
from typing import Optional
from datetime import datetime
from inventory_loans.core.clock import as_utc_naive

class DenyListEntryCreate(BaseModel):
    full_name: str = Field(..., min_length=1, max_length=200)
    national_id: Optional[str] = Field(None, max_length=30)
    reason: str = Field(..., min_length=1)
    incident_date: datetime
    sanction_until: Optional[datetime] = Field(None, description="Nulo = sanción indefinida")

    @model_validator(mode="after")
    def sanction_after_incident(self):
        if self.sanction_until is not None and as_utc_naive(self.sanction_until) < as_utc_naive(self.incident_date):
            raise ValueError("sanction_until cannot be before incident_date")
        return self
