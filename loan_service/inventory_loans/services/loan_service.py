"""Motor del ciclo de vida de los préstamos.

Estados: ``active`` -> ``overdue`` -> ``returned`` (terminal). El estado no se
guarda: se deriva en cada lectura a partir de ``returned_at``, ``due_at`` y la
hora actual, así no hace falta ningún proceso programado que lo actualice.

La verificación de capacidad de ``request_loan`` es leer-y-escribir: si hay
varios llamadores concurrentes, el host debe serializar las solicitudes sobre
un mismo bien.
"""
import logging
import math
import uuid
from datetime import datetime, timedelta
from typing import List, Optional
from sqlalchemy.orm import Session
from inventory_loans.core.clock import Clock, as_utc_naive, naive_clock, utcnow
from inventory_loans.core.config import Settings, settings as default_settings
from inventory_loans.core.errors import (
    CapacityError,
    DenyListError,
    InvalidStateError,
    NotFoundError,
    ValidationError,
)
from inventory_loans.models.enums import CatalogType, LoanStatus
from inventory_loans.models.item import Item
from inventory_loans.models.loan import Loan
from inventory_loans.schemas.loan import (
    LoanFilter,
    LoanRead,
    LoanRequest,
    LoanReturn,
    RequesterSnapshot,
)
from inventory_loans.services.catalog_service import CatalogService
from inventory_loans.services.deny_list_service import DenyListService
from inventory_loans.services.query_service import filter_loans
from inventory_loans.services.utils import parse_payload

logger = logging.getLogger(__name__)


def overlaps(a_start: datetime, a_end: datetime, b_start: datetime, b_end: datetime) -> bool:
    """Intervalos semiabiertos [a_start, a_end) y [b_start, b_end).

    Dos préstamos consecutivos con el mismo borde no se solapan.
    """
    return a_start < b_end and b_start < a_end


def derive_loan_status(loan: Loan, now: datetime) -> LoanStatus:
    if loan.returned_at is not None:
        return LoanStatus.RETURNED
    if loan.due_at < now:
        return LoanStatus.OVERDUE
    return LoanStatus.ACTIVE


def generate_loan_number() -> str:
    return f"PRE-{uuid.uuid4().hex[:8].upper()}"


class LoanService:
    def __init__(
        self,
        db: Session,
        clock: Clock = utcnow,
        deny_list: Optional[DenyListService] = None,
        catalog: Optional[CatalogService] = None,
        settings: Optional[Settings] = None,
    ):
        self.db = db
        self.clock = naive_clock(clock)
        self.deny_list = deny_list or DenyListService(db, self.clock)
        self.catalog = catalog or CatalogService(db)
        self.settings = settings or default_settings

    def get_model(self, loan_id: int) -> Loan:
        loan = self.db.get(Loan, loan_id)
        if loan is None:
            raise NotFoundError(f"Loan {loan_id} not found", {"id": loan_id})
        return loan

    def get(self, loan_id: int) -> LoanRead:
        """Obtener un préstamo con su estado derivado"""
        return self.to_read(self.get_model(loan_id))

    def get_status(self, loan_id: int) -> LoanStatus:
        return derive_loan_status(self.get_model(loan_id), self.clock())

    def overlapping_loans(self, item_id: int, start_at: datetime, due_at: datetime) -> List[Loan]:
        """Préstamos no devueltos del bien cuya ventana se cruza con la pedida"""
        pending = self.db.query(Loan).filter(
            Loan.item_id == item_id,
            Loan.returned_at.is_(None),
        ).all()
        return [
            loan for loan in pending
            if overlaps(loan.start_at, loan.due_at, start_at, due_at)
        ]

    def request_loan(
        self,
        item_id: int,
        requester,
        start_at: Optional[datetime] = None,
        due_at: Optional[datetime] = None,
        notes: Optional[str] = None,
        purpose: Optional[str] = None,
        event: Optional[str] = None,
        usage_location: Optional[str] = None,
        accepted_terms: bool = True,
    ) -> LoanRead:
        """Solicitar un préstamo; si pasa todas las verificaciones queda activo"""
        requester = parse_payload(RequesterSnapshot, requester)
        now = self.clock()

        entry = self.deny_list.find_active_match(requester, now)
        if entry is not None:
            logger.warning(
                "[LOANS] Rejected request from %s: deny-list entry %s",
                requester.national_id, entry.id,
            )
            raise DenyListError(
                f"{requester.full_name} has an active sanction",
                {
                    "entry_id": entry.id,
                    "reason": entry.reason,
                    "sanction_until": entry.sanction_until.isoformat() if entry.sanction_until else None,
                },
            )

        start_at = as_utc_naive(start_at) or now
        due_at = as_utc_naive(due_at) or start_at + timedelta(days=self.settings.default_loan_days)
        self._validate_window(start_at, due_at, now)
        if not accepted_terms:
            raise ValidationError("Loan terms must be accepted", {"field": "accepted_terms"})

        item = self.db.get(Item, item_id)
        if item is None or not item.active:
            raise NotFoundError(f"Item {item_id} not found or inactive", {"item_id": item_id})

        overlapping = len(self.overlapping_loans(item.id, start_at, due_at))
        if overlapping >= item.quantity_on_hand:
            logger.warning(
                "[LOANS] Rejected request for item %s: %s/%s units committed",
                item.id, overlapping, item.quantity_on_hand,
            )
            raise CapacityError(
                f"No free unit of {item.name} between {start_at.isoformat()} and {due_at.isoformat()}",
                {"item_id": item.id, "quantity_on_hand": item.quantity_on_hand, "overlapping": overlapping},
            )

        loan = Loan(
            loan_number=generate_loan_number(),
            item_id=item.id,
            requester_first_name=requester.first_name,
            requester_last_name=requester.last_name,
            requester_email=requester.email,
            requester_phone=requester.phone,
            requester_role=requester.role.value,
            requester_national_id=requester.national_id,
            purpose=purpose,
            event=event,
            usage_location=usage_location,
            notes=notes,
            requested_at=now,
            start_at=start_at,
            due_at=due_at,
        )
        self.db.add(loan)
        self.db.commit()
        self.db.refresh(loan)
        logger.info(
            "[LOANS] Loan %s created for item %s (%s -> %s)",
            loan.loan_number, item.id, start_at, due_at,
        )
        return self.to_read(loan, now)

    def submit(self, request) -> LoanRead:
        """Procesar una solicitud completa (formulario de préstamo)"""
        request = parse_payload(LoanRequest, request)
        return self.request_loan(
            request.item_id,
            request.requester,
            start_at=request.start_at,
            due_at=request.due_at,
            notes=request.notes,
            purpose=request.purpose,
            event=request.event,
            usage_location=request.usage_location,
            accepted_terms=request.accepted_terms,
        )

    def return_loan(
        self,
        loan_id: int,
        returned_at: Optional[datetime] = None,
        condition_id: Optional[int] = None,
        notes: Optional[str] = None,
    ) -> LoanRead:
        """Registrar la devolución. Un préstamo devuelto no cambia nunca más."""
        loan = self.get_model(loan_id)
        now = self.clock()
        if derive_loan_status(loan, now) == LoanStatus.RETURNED:
            raise InvalidStateError(
                f"Loan {loan.loan_number} was already returned",
                {"id": loan.id, "returned_at": loan.returned_at.isoformat()},
            )

        returned_at = as_utc_naive(returned_at) or now
        if returned_at < loan.start_at:
            raise ValidationError("Return date cannot be before the loan start", {"field": "returned_at"})
        if condition_id is not None:
            self.catalog.resolve(CatalogType.CONDITION, condition_id, field="condition_id")

        loan.returned_at = returned_at
        loan.return_condition_id = condition_id
        loan.return_notes = notes
        self.db.commit()
        self.db.refresh(loan)
        logger.info("[LOANS] Loan %s returned at %s", loan.loan_number, returned_at)
        return self.to_read(loan, now)

    def register_return(self, loan_id: int, data=None) -> LoanRead:
        """Procesar el formulario de devolución"""
        payload = parse_payload(LoanReturn, data or {})
        return self.return_loan(
            loan_id,
            returned_at=payload.returned_at,
            condition_id=payload.condition_id,
            notes=payload.notes,
        )

    def list_loans(self, loan_filter=None) -> List[LoanRead]:
        """Listar préstamos con estado derivado, por pestaña y búsqueda"""
        loan_filter = parse_payload(LoanFilter, loan_filter or {})
        query = self.db.query(Loan)
        if loan_filter.item_id is not None:
            query = query.filter(Loan.item_id == loan_filter.item_id)
        now = self.clock()
        rows = query.order_by(Loan.start_at.desc(), Loan.id.desc()).all()
        loans = [self.to_read(loan, now) for loan in rows]
        return filter_loans(loans, status_tab=loan_filter.status_tab, search=loan_filter.search)

    def list_overdue(self) -> List[LoanRead]:
        return self.list_loans({"status_tab": LoanStatus.OVERDUE})

    def loans_for_item(self, item_id: int) -> List[LoanRead]:
        return self.list_loans({"item_id": item_id})

    def to_read(self, loan: Loan, now: Optional[datetime] = None) -> LoanRead:
        now = as_utc_naive(now) or self.clock()
        status = derive_loan_status(loan, now)
        days_overdue = 0
        if status == LoanStatus.OVERDUE:
            days_overdue = math.ceil((now - loan.due_at).total_seconds() / 86400)
        return LoanRead(
            id=loan.id,
            loan_number=loan.loan_number,
            item_id=loan.item_id,
            item_name=loan.item.name,
            item_barcode=loan.item.barcode,
            requester=RequesterSnapshot(
                first_name=loan.requester_first_name,
                last_name=loan.requester_last_name,
                email=loan.requester_email,
                phone=loan.requester_phone,
                role=loan.requester_role,
                national_id=loan.requester_national_id,
            ),
            requester_name=loan.requester_name,
            purpose=loan.purpose,
            event=loan.event,
            usage_location=loan.usage_location,
            notes=loan.notes,
            requested_at=loan.requested_at,
            start_at=loan.start_at,
            due_at=loan.due_at,
            returned_at=loan.returned_at,
            return_condition_id=loan.return_condition_id,
            return_notes=loan.return_notes,
            status=status,
            days_overdue=days_overdue,
        )

    def _validate_window(self, start_at: datetime, due_at: datetime, requested_at: datetime):
        if start_at > due_at:
            raise ValidationError(
                "Loan start must not be after its due date",
                {"start_at": start_at.isoformat(), "due_at": due_at.isoformat()},
            )
        if start_at < requested_at:
            raise ValidationError(
                "Loan cannot start before it is requested",
                {"start_at": start_at.isoformat(), "requested_at": requested_at.isoformat()},
            )
        max_days = self.settings.max_loan_days
        if max_days is not None and due_at - start_at > timedelta(days=max_days):
            raise ValidationError(f"Loan window cannot exceed {max_days} days", {"max_loan_days": max_days})
