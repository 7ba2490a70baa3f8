# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
FastAPI dependency injection: wire repository, Slack client and services.
"""

from oncallbot.core.config import settings
from oncallbot.core.database import engine
from oncallbot.repositories.team_repository import TeamRepository
from oncallbot.services.identity_cache import IdentityCache
from oncallbot.services.messages import Messages
from oncallbot.services.oncall_service import OnCallService
from oncallbot.services.permission_service import PermissionResolver
from oncallbot.services.renderer import Renderer, load_timezone
from oncallbot.services.rotation_store import RotationStore
from oncallbot.services.slack_client import SlackClient

# ── Adapters ──
_team_repo = TeamRepository(engine, timeout=settings.OPERATION_TIMEOUT)
_slack_client = SlackClient(
    token=settings.SLACK_API_TOKEN,
    base_url=settings.SLACK_API_URL,
    timeout=settings.OPERATION_TIMEOUT,
)

# ── Shared state ──
_rotation_store = RotationStore(_team_repo)
_identity_cache = IdentityCache(_slack_client, ttl=settings.USER_CACHE_TIMEOUT)

# ── Service instances (with injected dependencies) ──
_messages = Messages(
    command=settings.COMMAND_ENDPOINT,
    input_error_emoji=settings.INPUT_ERROR_EMOJI,
    external_error_emoji=settings.EXTERNAL_ERROR_EMOJI,
    admin_sub_team_id=settings.ADMIN_SUB_TEAM_ID,
)
_permission_resolver = PermissionResolver(
    _rotation_store,
    _identity_cache,
    superusers=settings.SUPERUSERS,
    demote_admins=settings.DEMOTE_ADMINS,
)
_renderer = Renderer(
    _rotation_store,
    _identity_cache,
    _messages,
    tz=load_timezone(settings.TIMEZONE),
    color=settings.ATTACHMENT_COLOR,
)
_oncall_service = OnCallService(
    store=_rotation_store,
    identities=_identity_cache,
    permissions=_permission_resolver,
    renderer=_renderer,
    messages=_messages,
)


# ── FastAPI dependency functions ──
def get_team_repo() -> TeamRepository:
    return _team_repo


def get_rotation_store() -> RotationStore:
    return _rotation_store


def get_identity_cache() -> IdentityCache:
    return _identity_cache


def get_messages() -> Messages:
    return _messages


def get_oncall_service() -> OnCallService:
    return _oncall_service
