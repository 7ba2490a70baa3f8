# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Service: Slack Web API client, the identity provider.
Handles HTTP calls to Slack with the per-request deadline as timeout.
"""

from typing import Any, Optional

import httpx

from oncallbot.core.deadline import remaining_timeout
from oncallbot.core.exceptions import ExternalError
from oncallbot.core.logging import get_logger
from oncallbot.metrics.prometheus import SLACK_API_CALLS
from oncallbot.models.domain import IdentityProfile

logger = get_logger(__name__)

# users.info errors that mean "this account does not exist".
NOT_FOUND_ERRORS: frozenset[str] = frozenset({"user_not_found", "users_not_found"})
LIST_PAGE_SIZE = 200


def to_profile(user: dict[str, Any]) -> IdentityProfile:
    profile = user.get("profile") or {}
    return IdentityProfile(
        id=user["id"],
        name=user.get("name", ""),
        phone=profile.get("phone", "") or "",
        is_admin=bool(user.get("is_admin", False)),
        is_bot=bool(user.get("is_bot", False)),
        deleted=bool(user.get("deleted", False)),
    )


class SlackClient:
    """Thin synchronous wrapper over users.info / users.list."""

    def __init__(self, token: str, base_url: str, timeout: float = 3.0) -> None:
        self._token = token
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout

    def get_user(self, user_id: str) -> Optional[IdentityProfile]:
        """
        Fetch one account. Returns None if Slack says it does not exist.
        Bot and deactivated flags are passed through for the caller to filter.
        """
        data = self._call("users.info", {"user": user_id})
        if data is None:
            return None
        return to_profile(data["user"])

    def list_users(self) -> list[IdentityProfile]:
        """Every account in the workspace, following pagination cursors."""
        profiles: list[IdentityProfile] = []
        cursor = ""
        while True:
            params: dict[str, Any] = {"limit": LIST_PAGE_SIZE}
            if cursor:
                params["cursor"] = cursor
            data = self._call("users.list", params)
            if data is None:
                break
            profiles.extend(to_profile(m) for m in data.get("members", []))
            cursor = (data.get("response_metadata") or {}).get("next_cursor", "")
            if not cursor:
                break
        return profiles

    # ── Internal ──

    def _call(self, method: str, params: dict[str, Any]) -> Optional[dict[str, Any]]:
        timeout = remaining_timeout(self._timeout, f"slack {method}")
        try:
            with httpx.Client(timeout=timeout) as client:
                resp = client.get(
                    f"{self._base_url}/{method}",
                    params=params,
                    headers={"Authorization": f"Bearer {self._token}"},
                )
            resp.raise_for_status()
            data = resp.json()
        except httpx.HTTPError as exc:
            SLACK_API_CALLS.labels(method=method, status="transport_error").inc()
            raise ExternalError(f"slack {method} failed: {exc}") from exc
        except ValueError as exc:
            SLACK_API_CALLS.labels(method=method, status="bad_response").inc()
            raise ExternalError(f"slack {method} returned invalid JSON") from exc

        if data.get("ok"):
            SLACK_API_CALLS.labels(method=method, status="ok").inc()
            return data

        error = data.get("error", "unknown_error")
        if error in NOT_FOUND_ERRORS:
            SLACK_API_CALLS.labels(method=method, status="not_found").inc()
            logger.info("slack %s: account not found (%s)", method, params)
            return None
        SLACK_API_CALLS.labels(method=method, status="api_error").inc()
        raise ExternalError(f"slack {method} error: {error}")
