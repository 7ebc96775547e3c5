from sqlalchemy import Column, Integer, String, DateTime, Text
from sqlalchemy.sql import func
from .base import Base

class DenyListEntry(Base):
    """Entrada de la lista negra. ``sanction_until`` nulo = sanción indefinida"""
    __tablename__ = "deny_list_entries"

    id = Column(Integer, primary_key=True, index=True)
    full_name = Column(String(200), nullable=False)
    national_id = Column(String(30), index=True)
    reason = Column(Text, nullable=False)
    incident_date = Column(DateTime, nullable=False)
    sanction_until = Column(DateTime, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    def __repr__(self):
        return f"<DenyListEntry(full_name='{self.full_name}', national_id='{self.national_id}')>"
