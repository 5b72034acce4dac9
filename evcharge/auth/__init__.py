from .permissions import Role, Action, Scope, is_permitted, authorize
from .schemas import RequestContext

__all__ = ["Role", "Action", "Scope", "is_permitted", "authorize", "RequestContext"]
