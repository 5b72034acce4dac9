from typing import Any, Callable, Dict, List, Optional
import logging
import time

import httpx

from evcharge.client.context import RequestContext, ANONYMOUS
from evcharge.exceptions import ERRORS_BY_CODE, SessionExpired, AuthenticationFailed

logger = logging.getLogger(__name__)

LOGIN_PATH = "/auth/login"

class ConsoleClient:
    """
    Client for the console API.

    Business-rule failures come back as the server's exception types
    (`InvalidToken`, `InvalidStateTransition`, ...) and are never retried.
    Transport failures are retried with exponential backoff.
    """

    def __init__(
        self,
        http: httpx.Client,
        api_prefix: str = "/api",
        max_retries: int = 3,
        backoff_seconds: float = 0.5,
        sleep: Callable[[float], None] = time.sleep
    ):
        self.http = http
        self.api_prefix = api_prefix.rstrip("/")
        self.max_retries = max_retries
        self.backoff_seconds = backoff_seconds
        self._sleep = sleep
        # The one place where error responses are turned into typed failures
        self.http.event_hooks["response"].append(self._check_response)

    @classmethod
    def connect(cls, base_url: str, timeout: float = 10.0, **kwargs) -> "ConsoleClient":
        return cls(httpx.Client(base_url=base_url, timeout=timeout), **kwargs)

    def close(self) -> None:
        self.http.close()

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        self.close()

    # ------------------------------------------------------------------
    # Authentication
    # ------------------------------------------------------------------
    def login(self, username: str, password: str) -> RequestContext:
        data = self._request(ANONYMOUS, "POST", LOGIN_PATH, json={"username": username, "password": password})
        return RequestContext(
            access_token=data["accessToken"],
            role=data["role"],
            username=data["username"],
            user_id=data["userId"]
        )

    def me(self, ctx: RequestContext) -> Dict[str, Any]:
        return self._request(ctx, "GET", "/auth/me")

    # ------------------------------------------------------------------
    # Stations
    # ------------------------------------------------------------------
    def list_stations(self, ctx: RequestContext, **filters) -> List[Dict[str, Any]]:
        return self._request(ctx, "GET", "/stations", params=self._params(filters))

    def set_slots(self, ctx: RequestContext, station_id: str, available_slots: int) -> Dict[str, Any]:
        return self._request(
            ctx, "PATCH", f"/stations/{station_id}/slots", params={"availableSlots": available_slots}
        )

    def set_station_active(self, ctx: RequestContext, station_id: str, is_active: bool) -> Dict[str, Any]:
        return self._request(
            ctx, "PATCH", f"/stations/{station_id}/status", params={"isActive": str(is_active).lower()}
        )

    def assign_operators(self, ctx: RequestContext, station_id: str, user_ids: List[str]) -> Dict[str, Any]:
        return self._request(
            ctx, "PUT", f"/stations/{station_id}/operators", json={"operatorUserIds": list(user_ids)}
        )

    # ------------------------------------------------------------------
    # Bookings
    # ------------------------------------------------------------------
    def list_bookings(self, ctx: RequestContext, **filters) -> List[Dict[str, Any]]:
        return self._request(ctx, "GET", "/bookings", params=self._params(filters))

    def list_station_bookings(self, ctx: RequestContext, station_id: str, **filters) -> List[Dict[str, Any]]:
        return self._request(ctx, "GET", f"/bookings/station/{station_id}", params=self._params(filters))

    def get_booking(self, ctx: RequestContext, booking_id: str) -> Dict[str, Any]:
        return self._request(ctx, "GET", f"/bookings/{booking_id}")

    def decide(self, ctx: RequestContext, booking_id: str, approve: bool, reason: str = "") -> Dict[str, Any]:
        return self._request(
            ctx, "PATCH", f"/bookings/{booking_id}/approve", json={"approve": approve, "reason": reason or ""}
        )

    def start_session(self, ctx: RequestContext, booking_id: str, qr_code: str) -> Dict[str, Any]:
        return self._request(ctx, "PATCH", f"/bookings/{booking_id}/start", json={"qrCode": qr_code.strip()})

    def complete_session(self, ctx: RequestContext, booking_id: str) -> Dict[str, Any]:
        return self._request(ctx, "PATCH", f"/bookings/{booking_id}/complete")

    def cancel_booking(self, ctx: RequestContext, booking_id: str) -> Dict[str, Any]:
        return self._request(ctx, "DELETE", f"/bookings/{booking_id}")

    # ------------------------------------------------------------------
    # Transport
    # ------------------------------------------------------------------
    @staticmethod
    def _params(filters: Dict[str, Any]) -> Dict[str, Any]:
        return {key: value for key, value in filters.items() if value is not None}

    def _request(
        self,
        ctx: RequestContext,
        method: str,
        path: str,
        json: Optional[dict] = None,
        params: Optional[dict] = None
    ):
        url = f"{self.api_prefix}{path}"
        attempt = 0
        while True:
            try:
                response = self.http.request(method, url, json=json, params=params, headers=ctx.auth_headers())
                break
            except httpx.TransportError as e:
                if attempt >= self.max_retries:
                    logger.error(f"{method} {url} failed after {attempt + 1} attempts: {e}")
                    raise
                delay = self.backoff_seconds * (2 ** attempt)
                logger.warning(f"{method} {url} transport error ({e}); retrying in {delay:.2f}s")
                self._sleep(delay)
                attempt += 1

        if response.status_code == httpx.codes.NO_CONTENT or not response.content:
            return None
        return response.json()

    def _check_response(self, response: httpx.Response) -> None:
        """Response hook: map error statuses to the shared exception taxonomy"""
        if response.status_code < 400:
            return

        response.read()
        try:
            body = response.json()
        except ValueError:
            body = {}
        message = body.get("message") if isinstance(body, dict) else None

        if response.status_code == httpx.codes.UNAUTHORIZED:
            if response.request.url.path.endswith(LOGIN_PATH):
                raise AuthenticationFailed(message)
            raise SessionExpired(message)

        code = response.headers.get("X-Error") or (body.get("code") if isinstance(body, dict) else None)
        error_class = ERRORS_BY_CODE.get(code)
        if error_class is not None:
            raise error_class(message)
        response.raise_for_status()
