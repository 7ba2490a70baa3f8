# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Service: Slash-command grammar.
Pure computation: turns the "text" of a slash command into a Command.
"""

import re
from typing import Optional

from pydantic import BaseModel

from oncallbot.core.exceptions import InputError
from oncallbot.services.permission_service import Tier

# <@U024BE7LH|bob> as sent by Slack with "escape channels, users and links" on.
MENTION_RE = re.compile(r"^<@([UW][A-Z0-9]+)\|([^|<>]+)>$")

OPERATIONS: dict[str, Tier] = {
    "list": Tier.BASE,
    "update": Tier.BASE,
    "add": Tier.MANAGER,
    "remove": Tier.MANAGER,
    "swap": Tier.MANAGER,
    "flush": Tier.MANAGER,
    "register": Tier.EXEMPT,
    "unregister": Tier.EXEMPT,
}


class Mention(BaseModel):
    id: str
    name: str


class Command(BaseModel):
    operation: str
    team: str = ""
    user: Optional[Mention] = None
    label: str = ""
    positions: tuple[int, ...] = ()

    @property
    def tier(self) -> Tier:
        return OPERATIONS.get(self.operation, Tier.BASE)


HELP = Command(operation="help")


def decode_mention(token: str) -> Optional[Mention]:
    """<@ID|NAME> -> Mention, anything else -> None."""
    match = MENTION_RE.match(token)
    if match is None:
        return None
    return Mention(id=match.group(1), name=match.group(2))


def _mention(operation: str, token: str) -> Mention:
    mention = decode_mention(token)
    if mention is None:
        raise InputError(operation, f"invalid username {token}")
    return mention


def _position(operation: str, token: str) -> int:
    try:
        value = int(token)
    except ValueError:
        raise InputError(operation, f"invalid position {token}") from None
    if value < 1:
        raise InputError(operation, f"invalid position {token}")
    return value


def parse_command(text: str) -> Command:
    """
    Tokenize on whitespace and validate arity per operation.
    Unknown or empty operations yield HELP. Raises InputError otherwise.
    """
    tokens = text.split()
    if not tokens:
        return HELP
    op = tokens[0].lower()
    args = tokens[1:]

    if op == "list":
        if len(args) > 1:
            raise InputError(op, "too many parameters")
        return Command(operation=op, team=args[0].upper() if args else "")

    if op == "update":
        return Command(operation=op)

    if op == "add":
        if len(args) not in (2, 3):
            raise InputError(op, f"invalid # of params - {args}")
        return Command(
            operation=op,
            team=args[0].upper(),
            user=_mention(op, args[1]),
            label=args[2].lower() if len(args) == 3 else "",
        )

    if op == "remove":
        if len(args) != 2:
            raise InputError(op, f"invalid # of params - {args}")
        return Command(operation=op, team=args[0].upper(), user=_mention(op, args[1]))

    if op == "swap":
        if len(args) != 3:
            raise InputError(op, f"invalid # of params - {args}")
        return Command(
            operation=op,
            team=args[0].upper(),
            positions=(_position(op, args[1]), _position(op, args[2])),
        )

    if op == "flush":
        if len(args) != 1:
            raise InputError(op, f"invalid # of params - {args}")
        return Command(operation=op, team=args[0].upper())

    if op in ("register", "unregister"):
        if len(args) not in (1, 2):
            raise InputError(op, f"invalid # of params - {args}")
        return Command(
            operation=op,
            team=args[0].upper(),
            user=_mention(op, args[1]) if len(args) == 2 else None,
        )

    return HELP
