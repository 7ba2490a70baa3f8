# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Request / Response schemas: Slack slash-command contract.
Used at the controller (HTTP) boundary and as the reply value of the
service layer.
"""

from typing import Optional

from pydantic import BaseModel, Field


class SlackCommandRequest(BaseModel):
    """Form fields Slack posts for a slash command."""
    token: str = ""
    team_id: str = ""
    team_domain: str = ""
    channel_id: str = ""
    channel_name: str = ""
    user_id: str = ""
    user_name: str = ""
    command: str = ""
    text: str = ""
    response_url: str = ""


class Attachment(BaseModel):
    """Short form of a Slack message attachment."""
    title: Optional[str] = None
    text: str = ""
    color: Optional[str] = None
    footer: Optional[str] = None


class SlackResponse(BaseModel):
    response_type: Optional[str] = None
    text: str = ""
    attachments: list[Attachment] = Field(default_factory=list)
