from datetime import timedelta
from unittest import mock
import os
import tempfile

from evcharge.auth.permissions import Role
from evcharge.bookings.booking_service import BookingService
from evcharge.bookings.schemas import BookingCreate
from evcharge.bookings.state_machine import BookingStatus, BookingAction
from evcharge.config import settings
from evcharge.exceptions import (
    InvalidStateTransition, InvalidToken, NotAuthorized, NotFound, ConflictError
)
from evcharge.models import Booking
from evcharge.utils import as_utc, utcnow
from tests.base import DatabaseTestCase, TOKEN

class BookingServiceTestCase(DatabaseTestCase):

    def setUp(self):
        super().setUp()
        self.admin = self.make_user("admin", Role.BACKOFFICE)
        self.operator = self.make_user("operator1", Role.OPERATOR)
        self.outsider = self.make_user("operator2", Role.OPERATOR)
        self.make_owner()
        self.make_station("S1", operators=[self.operator])
        self.service = BookingService(self.db)
        self.backoffice = self.ctx_for(self.admin)
        self.assigned = self.ctx_for(self.operator)
        self.unassigned = self.ctx_for(self.outsider)

class TestBookingLifecycle(BookingServiceTestCase):

    def test_happy_path_scenario(self):
        booking = self.make_booking()

        booking = self.service.approve(self.backoffice, booking.id)
        self.assertEqual(booking.status, BookingStatus.APPROVED.value)

        with self.assertRaises(InvalidToken):
            self.service.start_session(self.assigned, booking.id, "wrong")
        self.assertEqual(self.reload(booking).status, BookingStatus.APPROVED.value)

        booking = self.service.start_session(self.assigned, booking.id, TOKEN)
        self.assertEqual(booking.status, BookingStatus.IN_PROGRESS.value)

        booking = self.service.complete_session(self.assigned, booking.id)
        self.assertEqual(booking.status, BookingStatus.COMPLETED.value)

        with self.assertRaises(InvalidStateTransition):
            self.service.complete_session(self.assigned, booking.id)
        self.assertEqual(self.reload(booking).status, BookingStatus.COMPLETED.value)

    def test_transition_refreshes_updated_but_not_created(self):
        booking = self.make_booking()
        created_before = as_utc(booking.created_utc)
        updated_before = as_utc(booking.updated_utc)

        booking = self.service.approve(self.backoffice, booking.id)

        self.assertEqual(as_utc(booking.created_utc), created_before)
        self.assertGreater(as_utc(booking.updated_utc), updated_before)

    def test_failed_transition_does_not_mutate(self):
        booking = self.make_booking(status=BookingStatus.REJECTED)
        updated_before = as_utc(booking.updated_utc)

        with self.assertRaises(InvalidStateTransition):
            self.service.approve(self.backoffice, booking.id)

        booking = self.reload(booking)
        self.assertEqual(booking.status, BookingStatus.REJECTED.value)
        self.assertEqual(as_utc(booking.updated_utc), updated_before)

    def test_every_action_from_every_status(self):
        runners = {
            BookingAction.APPROVE: lambda b: self.service.approve(self.backoffice, b.id),
            BookingAction.REJECT: lambda b: self.service.reject(self.backoffice, b.id, "no"),
            BookingAction.CANCEL: lambda b: self.service.cancel(self.backoffice, b.id),
            BookingAction.START: lambda b: self.service.start_session(self.assigned, b.id, TOKEN),
            BookingAction.COMPLETE: lambda b: self.service.complete_session(self.assigned, b.id),
        }
        allowed = {
            (BookingStatus.PENDING, BookingAction.APPROVE): BookingStatus.APPROVED,
            (BookingStatus.PENDING, BookingAction.REJECT): BookingStatus.REJECTED,
            (BookingStatus.APPROVED, BookingAction.REJECT): BookingStatus.REJECTED,
            (BookingStatus.APPROVED, BookingAction.START): BookingStatus.IN_PROGRESS,
            (BookingStatus.IN_PROGRESS, BookingAction.COMPLETE): BookingStatus.COMPLETED,
            (BookingStatus.PENDING, BookingAction.CANCEL): BookingStatus.CANCELLED,
            (BookingStatus.APPROVED, BookingAction.CANCEL): BookingStatus.CANCELLED,
            # A start retried on a running session is a no-op success
            (BookingStatus.IN_PROGRESS, BookingAction.START): BookingStatus.IN_PROGRESS,
        }
        for status in BookingStatus:
            for action, run in runners.items():
                booking = self.make_booking(status=status)
                if (status, action) in allowed:
                    result = run(booking)
                    self.assertEqual(result.status, allowed[(status, action)].value, f"{status} {action}")
                else:
                    with self.assertRaises(InvalidStateTransition, msg=f"{status} {action}"):
                        run(booking)
                    self.assertEqual(self.reload(booking).status, status.value)

class TestApprovalWorkflow(BookingServiceTestCase):

    def test_reject_stores_reason_verbatim(self):
        booking = self.make_booking()
        booking = self.service.decide(self.backoffice, booking.id, approve=False, reason="  Slot clash  ")
        self.assertEqual(booking.status, BookingStatus.REJECTED.value)
        self.assertEqual(booking.rejection_reason, "  Slot clash  ")

    def test_reject_reason_defaults_to_empty(self):
        booking = self.make_booking()
        booking = self.service.decide(self.backoffice, booking.id, approve=False, reason=None)
        self.assertEqual(booking.rejection_reason, "")

    def test_approve_ignores_reason(self):
        booking = self.make_booking()
        booking = self.service.decide(self.backoffice, booking.id, approve=True, reason="ignored")
        self.assertIsNone(booking.rejection_reason)

    def test_approved_booking_can_be_rejected(self):
        booking = self.make_booking(status=BookingStatus.APPROVED)
        booking = self.service.reject(self.backoffice, booking.id, "operational reversal")
        self.assertEqual(booking.status, BookingStatus.REJECTED.value)

    def test_rejected_booking_cannot_be_decided_again(self):
        booking = self.make_booking(status=BookingStatus.REJECTED)
        with self.assertRaises(InvalidStateTransition):
            self.service.reject(self.backoffice, booking.id, "again")
        with self.assertRaises(InvalidStateTransition):
            self.service.approve(self.backoffice, booking.id)

    def test_operator_cannot_decide(self):
        booking = self.make_booking()
        with self.assertRaises(NotAuthorized):
            self.service.approve(self.assigned, booking.id)
        self.assertEqual(self.reload(booking).status, BookingStatus.PENDING.value)

    def test_approve_issues_missing_token(self):
        booking = self.make_booking(qr_code=None)
        booking = self.service.approve(self.backoffice, booking.id)
        self.assertTrue(booking.qr_code)

    def test_missing_booking_is_not_found_for_backoffice(self):
        with self.assertRaises(NotFound):
            self.service.approve(self.backoffice, "does-not-exist")

class TestSessionProtocol(BookingServiceTestCase):

    def test_wrong_token_fails_in_every_status(self):
        for status in BookingStatus:
            booking = self.make_booking(status=status)
            with self.assertRaises(InvalidToken, msg=status):
                self.service.start_session(self.assigned, booking.id, "wrong")
            self.assertEqual(self.reload(booking).status, status.value)

    def test_token_comparison_is_case_sensitive(self):
        booking = self.make_booking(status=BookingStatus.APPROVED)
        with self.assertRaises(InvalidToken):
            self.service.start_session(self.assigned, booking.id, TOKEN.lower())

    def test_correct_token_on_pending_is_invalid_transition(self):
        booking = self.make_booking(status=BookingStatus.PENDING)
        with self.assertRaises(InvalidStateTransition):
            self.service.start_session(self.assigned, booking.id, TOKEN)

    def test_retried_start_is_a_no_op(self):
        booking = self.make_booking(status=BookingStatus.APPROVED)
        first = self.service.start_session(self.assigned, booking.id, TOKEN)
        first_updated = as_utc(first.updated_utc)

        second = self.service.start_session(self.assigned, booking.id, TOKEN)
        self.assertEqual(second.status, BookingStatus.IN_PROGRESS.value)
        self.assertEqual(as_utc(second.updated_utc), first_updated)

    def test_session_does_not_touch_slots(self):
        booking = self.make_booking(status=BookingStatus.APPROVED)
        self.service.start_session(self.assigned, booking.id, TOKEN)
        self.service.complete_session(self.assigned, booking.id)
        self.db.expire_all()
        self.assertEqual(self.reload(booking).station.available_slots, 3)

    def test_unassigned_operator_is_refused_even_with_valid_token(self):
        booking = self.make_booking(status=BookingStatus.APPROVED)
        with self.assertRaises(NotAuthorized):
            self.service.start_session(self.unassigned, booking.id, TOKEN)

        running = self.make_booking(status=BookingStatus.IN_PROGRESS)
        with self.assertRaises(NotAuthorized):
            self.service.complete_session(self.unassigned, running.id)

        self.assertEqual(self.reload(booking).status, BookingStatus.APPROVED.value)
        self.assertEqual(self.reload(running).status, BookingStatus.IN_PROGRESS.value)

    def test_backoffice_cannot_run_sessions(self):
        booking = self.make_booking(status=BookingStatus.APPROVED)
        with self.assertRaises(NotAuthorized):
            self.service.start_session(self.backoffice, booking.id, TOKEN)

    def test_missing_booking_looks_unauthorized_to_operators(self):
        with self.assertRaises(NotAuthorized):
            self.service.start_session(self.assigned, "does-not-exist", TOKEN)
        with self.assertRaises(NotAuthorized):
            self.service.complete_session(self.unassigned, "does-not-exist")

    def test_start_outside_time_window(self):
        booking = self.make_booking(status=BookingStatus.APPROVED, starts_in=timedelta(days=2))
        with self.assertRaises(InvalidStateTransition):
            self.service.start_session(self.assigned, booking.id, TOKEN)
        self.assertEqual(self.reload(booking).status, BookingStatus.APPROVED.value)

        with mock.patch.object(settings, "ENFORCE_SESSION_WINDOW", False):
            booking = self.service.start_session(self.assigned, booking.id, TOKEN)
        self.assertEqual(booking.status, BookingStatus.IN_PROGRESS.value)

    def test_early_start_within_grace(self):
        booking = self.make_booking(status=BookingStatus.APPROVED, starts_in=timedelta(minutes=5))
        booking = self.service.start_session(self.assigned, booking.id, TOKEN)
        self.assertEqual(booking.status, BookingStatus.IN_PROGRESS.value)

class TestCancellationAndDelete(BookingServiceTestCase):

    def test_cancel_keeps_record(self):
        booking = self.make_booking(status=BookingStatus.APPROVED)
        booking = self.service.cancel(self.backoffice, booking.id)
        self.assertEqual(booking.status, BookingStatus.CANCELLED.value)
        self.assertIsNotNone(self.reload(booking))

    def test_cancel_in_progress_fails(self):
        booking = self.make_booking(status=BookingStatus.IN_PROGRESS)
        with self.assertRaises(InvalidStateTransition):
            self.service.cancel(self.backoffice, booking.id)

    def test_operator_cannot_cancel(self):
        booking = self.make_booking()
        with self.assertRaises(NotAuthorized):
            self.service.cancel(self.assigned, booking.id)

    def test_delete_removes_record_in_any_status(self):
        booking = self.make_booking(status=BookingStatus.COMPLETED)
        booking_id = booking.id
        self.service.delete(self.backoffice, booking_id)
        self.db.expire_all()
        self.assertIsNone(self.db.get(Booking, booking_id))

class TestCreation(BookingServiceTestCase):

    def request(self, **overrides):
        start = utcnow() + timedelta(hours=1)
        data = {
            "owner_nic": "199012345678",
            "station_id": "S1",
            "start_time_utc": start,
            "end_time_utc": start + timedelta(hours=1),
        }
        data.update(overrides)
        return BookingCreate(**data)

    def test_create_pending_with_token(self):
        booking = self.service.create_booking(self.backoffice, self.request())
        self.assertEqual(booking.status, BookingStatus.PENDING.value)
        self.assertTrue(booking.qr_code)

    def test_create_rejects_inactive_station(self):
        self.make_station("S9", is_active=False)
        with self.assertRaises(ConflictError):
            self.service.create_booking(self.backoffice, self.request(station_id="S9"))

    def test_create_rejects_unknown_owner(self):
        with self.assertRaises(NotFound):
            self.service.create_booking(self.backoffice, self.request(owner_nic="nobody"))

    def test_time_range_must_be_ordered(self):
        start = utcnow()
        with self.assertRaises(ValueError):
            BookingCreate(owner_nic="1", station_id="S1", start_time_utc=start, end_time_utc=start)

    def test_operator_cannot_create(self):
        with self.assertRaises(NotAuthorized):
            self.service.create_booking(self.assigned, self.request())

class TestConcurrentDecisions(BookingServiceTestCase):
    """Two requests that both saw Pending: only the first write wins"""

    def setUp(self):
        self.tmpdir = tempfile.TemporaryDirectory()
        self.database_url = f"sqlite:///{os.path.join(self.tmpdir.name, 'race.db')}"
        super().setUp()

    def tearDown(self):
        super().tearDown()
        self.tmpdir.cleanup()

    def test_approve_and_reject_race(self):
        booking = self.make_booking()
        first, second = self.Session(), self.Session()
        try:
            # Both requests read the booking while it is Pending
            seen_by_second = second.get(Booking, booking.id)
            self.assertEqual(seen_by_second.status, BookingStatus.PENDING.value)

            BookingService(first).approve(self.backoffice, booking.id)

            with self.assertRaises(InvalidStateTransition):
                BookingService(second)._transition(
                    self.backoffice, seen_by_second, BookingAction.REJECT, {"rejection_reason": "duplicate"}
                )
        finally:
            first.close()
            second.close()

        booking = self.reload(booking)
        self.assertEqual(booking.status, BookingStatus.APPROVED.value)
        self.assertIsNone(booking.rejection_reason)

    def test_overlapping_start_retries_both_succeed(self):
        booking = self.make_booking(status=BookingStatus.APPROVED)
        first, second = self.Session(), self.Session()
        try:
            # The retry was sent while the first start was still in flight
            stale = second.get(Booking, booking.id)
            self.assertEqual(stale.status, BookingStatus.APPROVED.value)

            started = BookingService(first).start_session(self.assigned, booking.id, TOKEN)
            self.assertEqual(started.status, BookingStatus.IN_PROGRESS.value)

            retried = BookingService(second).start_session(self.assigned, booking.id, TOKEN)
            self.assertEqual(retried.status, BookingStatus.IN_PROGRESS.value)
        finally:
            first.close()
            second.close()

        self.assertEqual(self.reload(booking).status, BookingStatus.IN_PROGRESS.value)

    def test_overlapping_start_with_wrong_token_still_fails(self):
        booking = self.make_booking(status=BookingStatus.APPROVED)
        second = self.Session()
        try:
            second.get(Booking, booking.id)
            BookingService(self.db).start_session(self.assigned, booking.id, TOKEN)
            with self.assertRaises(InvalidToken):
                BookingService(second).start_session(self.assigned, booking.id, "wrong")
        finally:
            second.close()
