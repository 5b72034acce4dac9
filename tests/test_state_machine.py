import unittest

from evcharge.bookings.state_machine import (
    BookingStatus, BookingAction, TRANSITIONS, TERMINAL_STATUSES, ACTIVE_STATUSES,
    apply_transition, next_status, allowed_actions, is_terminal
)
from evcharge.exceptions import InvalidStateTransition

S = BookingStatus
A = BookingAction

EXPECTED = {
    (S.PENDING, A.APPROVE): S.APPROVED,
    (S.PENDING, A.REJECT): S.REJECTED,
    (S.APPROVED, A.REJECT): S.REJECTED,
    (S.APPROVED, A.START): S.IN_PROGRESS,
    (S.IN_PROGRESS, A.COMPLETE): S.COMPLETED,
    (S.PENDING, A.CANCEL): S.CANCELLED,
    (S.APPROVED, A.CANCEL): S.CANCELLED,
}

class TestBookingStateMachine(unittest.TestCase):

    def test_table_matches_lifecycle(self):
        self.assertEqual(TRANSITIONS, EXPECTED)

    def test_every_status_action_pair(self):
        for status in BookingStatus:
            for action in BookingAction:
                result = apply_transition(status, action)
                if (status, action) in EXPECTED:
                    self.assertTrue(result.ok, f"{status} {action}")
                    self.assertEqual(result.target, EXPECTED[(status, action)])
                    self.assertIsNone(result.error)
                else:
                    self.assertFalse(result.ok, f"{status} {action}")
                    self.assertIsInstance(result.error, InvalidStateTransition)
                    with self.assertRaises(InvalidStateTransition):
                        next_status(status, action)

    def test_terminal_statuses_have_no_way_out(self):
        self.assertEqual(TERMINAL_STATUSES, {S.COMPLETED, S.REJECTED, S.CANCELLED})
        for status in TERMINAL_STATUSES:
            self.assertTrue(is_terminal(status))
            self.assertEqual(allowed_actions(status), frozenset())

    def test_active_statuses(self):
        self.assertEqual(ACTIVE_STATUSES, {S.PENDING, S.APPROVED, S.IN_PROGRESS})

    def test_accepts_raw_strings(self):
        self.assertEqual(next_status("Approved", "start"), S.IN_PROGRESS)

    def test_no_transition_moves_backward(self):
        order = [S.PENDING, S.APPROVED, S.IN_PROGRESS, S.COMPLETED]
        for (source, _), target in TRANSITIONS.items():
            if source in order and target in order:
                self.assertGreater(order.index(target), order.index(source))

    def test_rejection_message_names_terminal_status(self):
        result = apply_transition(S.COMPLETED, A.COMPLETE)
        self.assertIn("already Completed", result.error.detail)

if __name__ == "__main__":
    unittest.main()
