from sqlalchemy import Column, Integer, String, DateTime, Text, ForeignKey
from sqlalchemy.orm import relationship
from .base import Base

class Loan(Base):
    """Préstamo de una unidad de un bien.

    Los datos del solicitante son una copia tomada al crear el préstamo, no
    una referencia viva. El estado (activo, vencido, devuelto) se deriva de
    ``returned_at`` y ``due_at``.
    """
    __tablename__ = "loans"

    id = Column(Integer, primary_key=True, index=True)
    loan_number = Column(String(20), unique=True, index=True, nullable=False)
    item_id = Column(Integer, ForeignKey("items.id"), index=True, nullable=False)

    requester_first_name = Column(String(100), nullable=False)
    requester_last_name = Column(String(100), nullable=False)
    requester_email = Column(String(255))
    requester_phone = Column(String(30))
    requester_role = Column(String(20), nullable=False)
    requester_national_id = Column(String(30), index=True, nullable=False)

    purpose = Column(Text)
    event = Column(String(200))
    usage_location = Column(String(200))
    notes = Column(Text)

    requested_at = Column(DateTime, nullable=False)
    start_at = Column(DateTime, nullable=False)
    due_at = Column(DateTime, index=True, nullable=False)
    returned_at = Column(DateTime, nullable=True)
    return_condition_id = Column(Integer, ForeignKey("catalog_entities.id"), nullable=True)
    return_notes = Column(Text)

    item = relationship("Item", back_populates="loans")

    @property
    def requester_name(self) -> str:
        return f"{self.requester_first_name} {self.requester_last_name}".strip()

    def __repr__(self):
        return f"<Loan(loan_number='{self.loan_number}', item_id={self.item_id})>"
