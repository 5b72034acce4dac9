import unittest

from evcharge.auth.permissions import Role, Action, Scope, CAPABILITIES, is_permitted, authorize
from evcharge.exceptions import NotAuthorized

class TestCapabilityTable(unittest.TestCase):

    def test_table_is_total(self):
        for role in Role:
            self.assertEqual(set(CAPABILITIES[role]), set(Action), role)
            for action in Action:
                self.assertIsInstance(CAPABILITIES[role][action], Scope)

    def test_backoffice(self):
        for action in (Action.DECIDE_BOOKING, Action.CANCEL_BOOKING, Action.EDIT_STATION_CAPACITY,
                       Action.READ_STATION_BOOKINGS, Action.READ_ALL_BOOKINGS, Action.MANAGE_STATIONS):
            self.assertTrue(is_permitted(Role.BACKOFFICE, action))
        self.assertFalse(is_permitted(Role.BACKOFFICE, Action.RUN_SESSION))
        self.assertFalse(is_permitted(Role.BACKOFFICE, Action.RUN_SESSION, assigned=True))

    def test_assigned_operator(self):
        for action in (Action.RUN_SESSION, Action.READ_STATION_BOOKINGS, Action.EDIT_STATION_CAPACITY):
            self.assertTrue(is_permitted(Role.OPERATOR, action, assigned=True))
        for action in (Action.DECIDE_BOOKING, Action.CANCEL_BOOKING, Action.READ_ALL_BOOKINGS):
            self.assertFalse(is_permitted(Role.OPERATOR, action, assigned=True))

    def test_unassigned_operator_never_runs_sessions_or_edits_capacity(self):
        for action in (Action.RUN_SESSION, Action.READ_STATION_BOOKINGS, Action.EDIT_STATION_CAPACITY):
            self.assertFalse(is_permitted(Role.OPERATOR, action, assigned=False))

    def test_owner_only_reads_own_bookings(self):
        for action in Action:
            expected = action == Action.READ_OWN_BOOKINGS
            self.assertEqual(is_permitted(Role.OWNER, action, assigned=True), expected, action)

    def test_only_backoffice_reads_session_tokens(self):
        self.assertTrue(is_permitted(Role.BACKOFFICE, Action.READ_BOOKING_TOKEN))
        self.assertFalse(is_permitted(Role.OPERATOR, Action.READ_BOOKING_TOKEN, assigned=True))
        self.assertFalse(is_permitted(Role.OWNER, Action.READ_BOOKING_TOKEN, assigned=True))

    def test_authorize_raises_forbidden(self):
        with self.assertRaises(NotAuthorized) as raised:
            authorize(Role.OPERATOR, Action.DECIDE_BOOKING)
        self.assertEqual(raised.exception.status_code, 403)
        authorize(Role.BACKOFFICE, Action.DECIDE_BOOKING)

if __name__ == "__main__":
    unittest.main()
