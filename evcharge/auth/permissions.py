"""
Role -> action capability table.

Roles are a closed enum and `is_permitted` is total over (role, action): every
pair has an explicit scope, so the matrix can be checked exhaustively.
Operator capabilities that depend on station assignment have scope ASSIGNED
and are only granted when the caller is listed among the station's operators.
"""

from enum import Enum
from typing import Dict

from evcharge.exceptions import NotAuthorized

class Role(str, Enum):
    BACKOFFICE = "Backoffice"
    OPERATOR = "Operator"
    OWNER = "Owner"

class Action(str, Enum):
    DECIDE_BOOKING = "decide_booking"
    CANCEL_BOOKING = "cancel_booking"
    DELETE_BOOKING = "delete_booking"
    CREATE_BOOKING = "create_booking"
    RUN_SESSION = "run_session"
    READ_STATION_BOOKINGS = "read_station_bookings"
    READ_ALL_BOOKINGS = "read_all_bookings"
    READ_OWN_BOOKINGS = "read_own_bookings"
    READ_BOOKING_TOKEN = "read_booking_token"
    EDIT_STATION_CAPACITY = "edit_station_capacity"
    LIST_STATIONS = "list_stations"
    MANAGE_STATIONS = "manage_stations"
    MANAGE_USERS = "manage_users"
    MANAGE_OWNERS = "manage_owners"

class Scope(str, Enum):
    ANY = "any"
    ASSIGNED = "assigned"
    NONE = "none"

CAPABILITIES: Dict[Role, Dict[Action, Scope]] = {
    Role.BACKOFFICE: {
        Action.DECIDE_BOOKING: Scope.ANY,
        Action.CANCEL_BOOKING: Scope.ANY,
        Action.DELETE_BOOKING: Scope.ANY,
        Action.CREATE_BOOKING: Scope.ANY,
        Action.RUN_SESSION: Scope.NONE,
        Action.READ_STATION_BOOKINGS: Scope.ANY,
        Action.READ_ALL_BOOKINGS: Scope.ANY,
        Action.READ_OWN_BOOKINGS: Scope.NONE,
        Action.READ_BOOKING_TOKEN: Scope.ANY,
        Action.EDIT_STATION_CAPACITY: Scope.ANY,
        Action.LIST_STATIONS: Scope.ANY,
        Action.MANAGE_STATIONS: Scope.ANY,
        Action.MANAGE_USERS: Scope.ANY,
        Action.MANAGE_OWNERS: Scope.ANY,
    },
    Role.OPERATOR: {
        Action.DECIDE_BOOKING: Scope.NONE,
        Action.CANCEL_BOOKING: Scope.NONE,
        Action.DELETE_BOOKING: Scope.NONE,
        Action.CREATE_BOOKING: Scope.NONE,
        Action.RUN_SESSION: Scope.ASSIGNED,
        Action.READ_STATION_BOOKINGS: Scope.ASSIGNED,
        Action.READ_ALL_BOOKINGS: Scope.NONE,
        Action.READ_OWN_BOOKINGS: Scope.NONE,
        Action.READ_BOOKING_TOKEN: Scope.NONE,
        Action.EDIT_STATION_CAPACITY: Scope.ASSIGNED,
        Action.LIST_STATIONS: Scope.ANY,
        Action.MANAGE_STATIONS: Scope.NONE,
        Action.MANAGE_USERS: Scope.NONE,
        Action.MANAGE_OWNERS: Scope.NONE,
    },
    # Owners are served by an external surface; only their own bookings are readable there
    Role.OWNER: {
        action: (Scope.ANY if action == Action.READ_OWN_BOOKINGS else Scope.NONE)
        for action in Action
    },
}

def scope_for(role: Role, action: Action) -> Scope:
    return CAPABILITIES[Role(role)][Action(action)]

def is_permitted(role: Role, action: Action, assigned: bool = False) -> bool:
    """Whether `role` may perform `action`; `assigned` is the caller's station assignment"""
    scope = scope_for(role, action)
    if scope == Scope.ANY:
        return True
    if scope == Scope.ASSIGNED:
        return assigned
    return False

def requires_assignment(role: Role, action: Action) -> bool:
    return scope_for(role, action) == Scope.ASSIGNED

def authorize(role: Role, action: Action, assigned: bool = False) -> None:
    """Raise NotAuthorized unless the table permits the action"""
    if not is_permitted(role, action, assigned):
        raise NotAuthorized()
