import random
from datetime import datetime, timedelta, timezone

import pytest

from inventory_loans.core.errors import (
    CapacityError,
    DenyListError,
    InvalidReferenceError,
    InvalidStateError,
    NotFoundError,
    ValidationError,
)
from inventory_loans.models.enums import LoanStatus
from inventory_loans.services.loan_service import LoanService, overlaps


def APR(day):
    return datetime(2024, 4, day)


class TestOverlaps:
    def test_half_open_boundaries_do_not_conflict(self):
        assert not overlaps(APR(1), APR(8), APR(8), APR(10))
        assert not overlaps(APR(8), APR(10), APR(1), APR(8))

    def test_partial_overlap(self):
        assert overlaps(APR(1), APR(8), APR(5), APR(10))

    def test_containment(self):
        assert overlaps(APR(1), APR(20), APR(5), APR(6))

    def test_symmetry_on_random_windows(self):
        rng = random.Random(7)
        for _ in range(300):
            a1, a2, b1, b2 = (APR(1) + timedelta(hours=rng.randint(0, 400)) for _ in range(4))
            a1, a2 = sorted((a1, a2))
            b1, b2 = sorted((b1, b2))
            assert overlaps(a1, a2, b1, b2) == overlaps(b1, b2, a1, a2)


class TestRequestLoan:
    def test_overlapping_request_is_rejected_when_fully_committed(self, loans, make_item, requester):
        item = make_item(quantity=1)
        loan_a = loans.request_loan(item.id, requester, APR(1), APR(8))
        assert loan_a.status == LoanStatus.ACTIVE

        with pytest.raises(CapacityError) as exc:
            loans.request_loan(item.id, requester, APR(5), APR(10))
        assert exc.value.details["overlapping"] == 1

    def test_returned_loans_free_their_unit(self, loans, make_item, requester):
        item = make_item(quantity=1)
        loan_a = loans.request_loan(item.id, requester, APR(1), APR(8))
        loans.return_loan(loan_a.id, returned_at=APR(6))

        loan_b = loans.request_loan(item.id, requester, APR(5), APR(10))
        assert loan_b.status == LoanStatus.ACTIVE

    def test_back_to_back_loans_are_accepted(self, loans, make_item, requester):
        item = make_item(quantity=1)
        loans.request_loan(item.id, requester, APR(1), APR(8))
        assert loans.request_loan(item.id, requester, APR(8), APR(10)).status == LoanStatus.ACTIVE

    def test_quantity_allows_parallel_loans(self, loans, make_item, requester):
        item = make_item(quantity=2)
        loans.request_loan(item.id, requester, APR(1), APR(8))
        loans.request_loan(item.id, requester, APR(2), APR(9))
        with pytest.raises(CapacityError):
            loans.request_loan(item.id, requester, APR(3), APR(4))

    def test_snapshot_and_defaults(self, loans, make_item, requester, clock):
        item = make_item()
        loan = loans.request_loan(item.id, requester, notes="Clase de robótica")

        assert loan.start_at == clock.now
        assert loan.due_at == clock.now + timedelta(days=7)
        assert loan.requested_at == clock.now
        assert loan.loan_number.startswith("PRE-")
        assert loan.requester.national_id == "0102030405"
        assert loan.requester_name == "Carlos Méndez"
        assert loan.item_barcode == item.barcode
        assert loan.notes == "Clase de robótica"

    def test_aware_datetimes_are_normalized_to_utc(self, loans, make_item, requester):
        item = make_item()
        start = datetime(2024, 4, 1, 10, 0, tzinfo=timezone(timedelta(hours=-5)))
        loan = loans.request_loan(item.id, requester, start, start + timedelta(days=2))
        assert loan.start_at == datetime(2024, 4, 1, 15, 0)

    def test_aware_clock_is_normalized_to_utc(self, db, make_item, requester, settings):
        quito = timezone(timedelta(hours=-5))
        service = LoanService(db, lambda: datetime(2024, 3, 30, 4, 0, tzinfo=quito), settings=settings)
        item = make_item()
        loan = service.request_loan(item.id, requester, APR(1), APR(3))
        assert loan.requested_at == datetime(2024, 3, 30, 9, 0)
        assert loan.status == LoanStatus.ACTIVE
        with pytest.raises(ValidationError):
            service.request_loan(item.id, requester, datetime(2024, 3, 30, 8, 0), APR(3))

    def test_start_after_due_is_invalid(self, loans, make_item, requester):
        item = make_item()
        with pytest.raises(ValidationError):
            loans.request_loan(item.id, requester, APR(8), APR(1))

    def test_start_before_request_time_is_invalid(self, loans, make_item, requester, clock):
        item = make_item()
        with pytest.raises(ValidationError):
            loans.request_loan(item.id, requester, clock.now - timedelta(hours=1), APR(8))

    def test_window_longer_than_maximum_is_invalid(self, loans, make_item, requester):
        item = make_item()
        with pytest.raises(ValidationError):
            loans.request_loan(item.id, requester, APR(1), APR(1) + timedelta(days=91))

    def test_terms_must_be_accepted(self, loans, make_item, requester):
        item = make_item()
        with pytest.raises(ValidationError):
            loans.request_loan(item.id, requester, APR(1), APR(8), accepted_terms=False)

    def test_invalid_requester_payload(self, loans, make_item, requester):
        item = make_item()
        requester["national_id"] = "   "
        with pytest.raises(ValidationError):
            loans.request_loan(item.id, requester, APR(1), APR(8))

    def test_missing_or_inactive_item(self, loans, items, make_item, requester):
        with pytest.raises(NotFoundError):
            loans.request_loan(999, requester, APR(1), APR(8))

        item = make_item()
        items.deactivate(item.id)
        with pytest.raises(NotFoundError):
            loans.request_loan(item.id, requester, APR(1), APR(8))

    def test_deny_list_wins_over_availability(self, loans, deny_list, make_item, requester):
        item = make_item(quantity=10)
        deny_list.add({
            "full_name": "Carlos Méndez",
            "national_id": "0102030405",
            "reason": "Equipo devuelto con daños",
            "incident_date": datetime(2024, 1, 10),
            "sanction_until": None,
        })
        with pytest.raises(DenyListError):
            loans.request_loan(item.id, requester, APR(1), APR(8))

    def test_deny_list_checked_before_dates(self, loans, deny_list, make_item, requester):
        item = make_item()
        deny_list.add({
            "full_name": "Carlos Méndez",
            "national_id": "0102030405",
            "reason": "Incumplimiento",
            "incident_date": datetime(2024, 1, 10),
        })
        with pytest.raises(DenyListError):
            loans.request_loan(item.id, requester, APR(8), APR(1))

    def test_submit_form_payload(self, loans, make_item, requester):
        item = make_item()
        loan = loans.submit({
            "item_id": item.id,
            "requester": requester,
            "start_at": APR(2),
            "due_at": APR(4),
            "purpose": "Feria de ciencias",
            "event": "Expo 2024",
            "usage_location": "Auditorio",
        })
        assert loan.purpose == "Feria de ciencias"
        assert loan.event == "Expo 2024"
        assert loan.usage_location == "Auditorio"


class TestStatusDerivation:
    def test_overdue_when_due_date_passed(self, loans, make_item, requester, clock):
        item = make_item()
        loan = loans.request_loan(item.id, requester, APR(1), APR(8))

        clock.set(APR(10))
        read = loans.get(loan.id)
        assert read.status == LoanStatus.OVERDUE
        assert read.days_overdue == 2
        assert loans.get_status(loan.id) == LoanStatus.OVERDUE

    def test_derivation_is_deterministic(self, loans, make_item, requester, clock):
        item = make_item()
        loan = loans.request_loan(item.id, requester, APR(1), APR(8))
        clock.set(APR(9))
        assert loans.get(loan.id) == loans.get(loan.id)

    def test_unreturned_loan_blocks_its_window(self, loans, make_item, requester, clock):
        item = make_item(quantity=1)
        loans.request_loan(item.id, requester, APR(1), APR(8))
        clock.set(APR(7))
        with pytest.raises(CapacityError):
            loans.request_loan(item.id, requester, APR(7), APR(9))

    def test_overdue_loan_only_blocks_its_own_window(self, loans, make_item, requester, clock):
        item = make_item(quantity=1)
        late = loans.request_loan(item.id, requester, APR(1), APR(8))
        clock.set(APR(9))
        assert loans.get(late.id).status == LoanStatus.OVERDUE
        assert loans.request_loan(item.id, requester, APR(9), APR(11)).status == LoanStatus.ACTIVE

    def test_list_overdue(self, loans, make_item, requester, clock):
        item = make_item(quantity=3)
        late = loans.request_loan(item.id, requester, APR(1), APR(3))
        loans.request_loan(item.id, requester, APR(1), APR(20))
        returned = loans.request_loan(item.id, requester, APR(1), APR(2))
        loans.return_loan(returned.id, returned_at=APR(2))

        clock.set(APR(10))
        assert [loan.id for loan in loans.list_overdue()] == [late.id]


class TestReturnLoan:
    def test_return_marks_loan_returned(self, loans, make_item, requester, clock):
        item = make_item()
        loan = loans.request_loan(item.id, requester, APR(1), APR(8))
        clock.set(APR(5))
        returned = loans.return_loan(loan.id)
        assert returned.status == LoanStatus.RETURNED
        assert returned.returned_at == APR(5)

    def test_overdue_loan_can_be_returned(self, loans, make_item, requester, clock):
        item = make_item()
        loan = loans.request_loan(item.id, requester, APR(1), APR(8))
        clock.set(APR(12))
        assert loans.return_loan(loan.id).status == LoanStatus.RETURNED

    def test_double_return_is_invalid(self, loans, make_item, requester):
        item = make_item()
        loan = loans.request_loan(item.id, requester, APR(1), APR(8))
        loans.return_loan(loan.id, returned_at=APR(3))
        with pytest.raises(InvalidStateError):
            loans.return_loan(loan.id, returned_at=APR(4))

    def test_return_before_start_is_invalid(self, loans, make_item, requester):
        item = make_item()
        loan = loans.request_loan(item.id, requester, APR(5), APR(8))
        with pytest.raises(ValidationError):
            loans.return_loan(loan.id, returned_at=APR(4))
        assert loans.get(loan.id).status == LoanStatus.ACTIVE

    def test_return_with_condition(self, loans, make_item, requester, refs):
        item = make_item()
        loan = loans.request_loan(item.id, requester, APR(1), APR(8))
        returned = loans.return_loan(loan.id, returned_at=APR(2), condition_id=refs["broken"].id, notes="Pantalla rayada")
        assert returned.return_condition_id == refs["broken"].id
        assert returned.return_notes == "Pantalla rayada"

    def test_return_condition_must_be_a_condition(self, loans, make_item, requester, refs):
        item = make_item()
        loan = loans.request_loan(item.id, requester, APR(1), APR(8))
        with pytest.raises(InvalidReferenceError):
            loans.return_loan(loan.id, returned_at=APR(2), condition_id=refs["repair"].id)

    def test_register_return_form(self, loans, make_item, requester, refs):
        item = make_item()
        loan = loans.request_loan(item.id, requester, APR(1), APR(8))
        returned = loans.register_return(loan.id, {
            "returned_at": "2024-04-06T10:00:00",
            "condition_id": refs["good"].id,
            "notes": "Sin novedades",
        })
        assert returned.status == LoanStatus.RETURNED
        assert returned.returned_at == datetime(2024, 4, 6, 10, 0)
        assert returned.return_notes == "Sin novedades"

    def test_register_return_rejects_malformed_form(self, loans, make_item, requester):
        item = make_item()
        loan = loans.request_loan(item.id, requester, APR(1), APR(8))
        with pytest.raises(ValidationError):
            loans.register_return(loan.id, {"condition_id": "ninguna"})
        assert loans.get(loan.id).status == LoanStatus.ACTIVE

    def test_unknown_loan(self, loans):
        with pytest.raises(NotFoundError):
            loans.return_loan(12345)

    def test_returned_is_terminal(self, loans, make_item, requester, clock):
        item = make_item()
        loan = loans.request_loan(item.id, requester, APR(1), APR(8))
        loans.return_loan(loan.id, returned_at=APR(3))

        for moment in (APR(4), APR(9), datetime(2025, 1, 1)):
            clock.set(moment)
            assert loans.get(loan.id).status == LoanStatus.RETURNED
            with pytest.raises(InvalidStateError):
                loans.return_loan(loan.id)
        assert loans.get(loan.id).returned_at == APR(3)


class TestNoDoubleBooking:
    @pytest.mark.parametrize("seed", [1, 2, 3])
    def test_random_request_sequences_never_overbook(self, loans, make_item, requester, seed):
        rng = random.Random(seed)
        quantity = rng.randint(1, 3)
        item = make_item(quantity=quantity)
        accepted = []

        for _ in range(60):
            start = APR(1) + timedelta(hours=rng.randint(0, 24 * 20))
            due = start + timedelta(hours=rng.randint(1, 24 * 6))
            conflicting = sum(1 for s, d in accepted if overlaps(s, d, start, due))
            try:
                loans.request_loan(item.id, requester, start, due)
            except CapacityError:
                assert conflicting >= quantity
                continue
            assert conflicting < quantity
            accepted.append((start, due))

            # Ningún instante queda cubierto por más de `quantity` préstamos
            for s, _ in accepted:
                covering = sum(1 for s2, d2 in accepted if s2 <= s < d2)
                assert covering <= quantity


def test_loans_for_item_and_search(loans, make_item, requester):
    first = make_item(quantity=2, name="Proyector Epson")
    second = make_item(name="Arduino Starter Kit")
    a = loans.request_loan(first.id, requester, APR(1), APR(3))
    b = loans.request_loan(first.id, requester, APR(4), APR(6))
    loans.request_loan(second.id, requester, APR(1), APR(3))

    assert [loan.id for loan in loans.loans_for_item(first.id)] == [b.id, a.id]
    assert len(loans.list_loans({"search": "arduino"})) == 1
    assert len(loans.list_loans({"status_tab": "all", "search": "0102030405"})) == 3
