from dataclasses import dataclass, replace
from typing import Optional

@dataclass(frozen=True)
class RequestContext:
    """
    Explicit credential for console API calls.

    Passed to every request instead of living in ambient storage. Signing in
    returns a new context; an expired session is surfaced as `SessionExpired`
    and the caller decides how to re-authenticate.
    """
    access_token: Optional[str] = None
    role: Optional[str] = None
    username: Optional[str] = None
    user_id: Optional[str] = None

    @property
    def is_authenticated(self) -> bool:
        return self.access_token is not None

    def auth_headers(self) -> dict:
        if not self.access_token:
            return {}
        return {"Authorization": f"Bearer {self.access_token}"}

    def signed_out(self) -> "RequestContext":
        return replace(self, access_token=None, role=None, username=None, user_id=None)

ANONYMOUS = RequestContext()
