import logging
import re
import unicodedata
from datetime import datetime
from typing import List, Optional
from sqlalchemy.orm import Session
from inventory_loans.core.clock import Clock, as_utc_naive, naive_clock, utcnow
from inventory_loans.core.errors import NotFoundError, ValidationError
from inventory_loans.models.deny_list import DenyListEntry
from inventory_loans.schemas.deny_list import DenyListEntryCreate
from inventory_loans.schemas.loan import RequesterSnapshot
from inventory_loans.services.utils import parse_payload

logger = logging.getLogger(__name__)


def normalize_name(name: Optional[str]) -> str:
    """Nombre comparable: sin tildes, minúsculas y espacios simples"""
    if not name:
        return ""
    decomposed = unicodedata.normalize("NFKD", name)
    plain = "".join(ch for ch in decomposed if not unicodedata.combining(ch))
    return " ".join(plain.lower().split())


def normalize_national_id(national_id: Optional[str]) -> str:
    if not national_id:
        return ""
    return re.sub(r"[\s\-.]", "", national_id).lower()


def is_sanction_active(entry: DenyListEntry, now: datetime) -> bool:
    return entry.sanction_until is None or now < entry.sanction_until


def entry_matches(entry: DenyListEntry, requester: RequesterSnapshot) -> bool:
    """La cédula manda; si la entrada no tiene cédula se compara el nombre"""
    if entry.national_id:
        return normalize_national_id(entry.national_id) == normalize_national_id(requester.national_id)
    return normalize_name(entry.full_name) == normalize_name(requester.full_name)


class DenyListService:
    """Lista negra de solicitantes sancionados"""

    def __init__(self, db: Session, clock: Clock = utcnow):
        self.db = db
        self.clock = naive_clock(clock)

    def get(self, entry_id: int) -> DenyListEntry:
        entry = self.db.get(DenyListEntry, entry_id)
        if entry is None:
            raise NotFoundError(f"Deny-list entry {entry_id} not found", {"id": entry_id})
        return entry

    def add(self, entry_data) -> DenyListEntry:
        """Registrar una sanción"""
        payload = parse_payload(DenyListEntryCreate, entry_data)
        entry = DenyListEntry(
            full_name=payload.full_name.strip(),
            national_id=payload.national_id.strip() if payload.national_id else None,
            reason=payload.reason,
            incident_date=as_utc_naive(payload.incident_date),
            sanction_until=as_utc_naive(payload.sanction_until),
        )
        self.db.add(entry)
        self.db.commit()
        self.db.refresh(entry)
        logger.info(
            "[DENY_LIST] Added entry %s for %s until %s",
            entry.id, entry.full_name, entry.sanction_until or "indefinite",
        )
        return entry

    def lift(self, entry_id: int, at: Optional[datetime] = None) -> DenyListEntry:
        """Terminar la sanción en ``at`` (por defecto, ahora).

        Levantar nunca alarga una sanción: si ya termina en ``at`` o antes,
        la entrada queda igual.
        """
        entry = self.get(entry_id)
        at = as_utc_naive(at) or self.clock()
        if at < entry.incident_date:
            raise ValidationError("A sanction cannot end before the incident", {"field": "at"})
        if entry.sanction_until is not None and entry.sanction_until <= at:
            logger.info("[DENY_LIST] Entry %s already ends at %s", entry.id, entry.sanction_until)
            return entry
        entry.sanction_until = at
        self.db.commit()
        self.db.refresh(entry)
        logger.info("[DENY_LIST] Lifted entry %s at %s", entry.id, at)
        return entry

    def list(self, active_only: bool = True) -> List[DenyListEntry]:
        entries = self.db.query(DenyListEntry).order_by(DenyListEntry.incident_date.desc()).all()
        if not active_only:
            return entries
        now = self.clock()
        return [entry for entry in entries if is_sanction_active(entry, now)]

    def find_active_match(self, requester, now: Optional[datetime] = None) -> Optional[DenyListEntry]:
        """Primera sanción vigente que coincide con el solicitante, o None"""
        requester = parse_payload(RequesterSnapshot, requester)
        now = as_utc_naive(now) or self.clock()
        for entry in self.db.query(DenyListEntry).order_by(DenyListEntry.id).all():
            if is_sanction_active(entry, now) and entry_matches(entry, requester):
                return entry
        return None
