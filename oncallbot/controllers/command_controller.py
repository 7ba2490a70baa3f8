# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Controller: Slack slash-command endpoint.
Thin HTTP layer: verifies the request came from our Slack command and
delegates everything else to OnCallService.
"""

import hmac

from fastapi import APIRouter, Depends, Form

from oncallbot.core.config import settings
from oncallbot.core.deadline import deadline_context
from oncallbot.core.dependencies import get_messages, get_oncall_service
from oncallbot.core.logging import get_logger
from oncallbot.models.domain import Requestor
from oncallbot.schemas.slack import SlackCommandRequest, SlackResponse
from oncallbot.services.messages import Messages
from oncallbot.services.oncall_service import OnCallService

logger = get_logger(__name__)

router = APIRouter(prefix="/api/v1", tags=["Slack"])


def command_form(
    token: str = Form(""),
    team_id: str = Form(""),
    team_domain: str = Form(""),
    channel_id: str = Form(""),
    channel_name: str = Form(""),
    user_id: str = Form(""),
    user_name: str = Form(""),
    command: str = Form(""),
    text: str = Form(""),
    response_url: str = Form(""),
) -> SlackCommandRequest:
    return SlackCommandRequest(
        token=token,
        team_id=team_id,
        team_domain=team_domain,
        channel_id=channel_id,
        channel_name=channel_name,
        user_id=user_id,
        user_name=user_name,
        command=command,
        text=text,
        response_url=response_url,
    )


def _verified(request: SlackCommandRequest) -> bool:
    if not hmac.compare_digest(
        request.token.encode(), settings.SLACK_COMMAND_TOKEN.encode()
    ):
        logger.warning("invalid command token from %s (%s)", request.user_name, request.user_id)
        return False
    if request.command != settings.COMMAND_ENDPOINT:
        logger.warning("unexpected command %r from %s", request.command, request.user_name)
        return False
    return True


@router.post(
    "/slack/commands",
    response_model=SlackResponse,
    response_model_exclude_none=True,
    summary="Handle the on-call slash command",
)
def handle_command(
    request: SlackCommandRequest = Depends(command_form),
    service: OnCallService = Depends(get_oncall_service),
    messages: Messages = Depends(get_messages),
):
    """Slack always gets HTTP 200; errors are reported in the reply text."""
    if not _verified(request):
        return SlackResponse(text=messages.external)

    requestor = Requestor(id=request.user_id, name=request.user_name)
    with deadline_context(settings.OPERATION_TIMEOUT):
        return service.execute(request.text, requestor)
