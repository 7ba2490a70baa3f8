# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false

"""Tests for the slash-command grammar."""

import pytest

from oncallbot.core.exceptions import InputError
from oncallbot.services.command_parser import HELP, decode_mention, parse_command
from oncallbot.services.permission_service import Tier


class TestMention:
    def test_decode(self):
        mention = decode_mention("<@U024BE7LH|bob>")
        assert (mention.id, mention.name) == ("U024BE7LH", "bob")

    @pytest.mark.parametrize("token", ["bob", "@bob", "<@U024BE7LH>", "<#C123|ops>", "<@u1|x>"])
    def test_rejects_non_mentions(self, token):
        assert decode_mention(token) is None


class TestParse:
    @pytest.mark.parametrize("text", ["", "   ", "help", "dance platform"])
    def test_help(self, text):
        assert parse_command(text) == HELP

    def test_list(self):
        assert parse_command("list").team == ""
        assert parse_command("LIST platform").team == "PLATFORM"

    def test_add_with_label(self):
        command = parse_command("add platform <@UBOB|bob> DataBase")
        assert command.operation == "add"
        assert command.team == "PLATFORM"
        assert command.user.id == "UBOB"
        assert command.label == "database"
        assert command.tier is Tier.MANAGER

    def test_swap_positions(self):
        command = parse_command("swap platform 3 1")
        assert command.positions == (3, 1)

    def test_register_without_manager(self):
        command = parse_command("register data")
        assert command.user is None
        assert command.tier is Tier.EXEMPT

    def test_update_ignores_extra_tokens(self):
        assert parse_command("update please").operation == "update"

    @pytest.mark.parametrize(
        "text,operation",
        [
            ("list a b", "list"),
            ("add platform", "add"),
            ("add platform bob", "add"),
            ("remove platform", "remove"),
            ("swap platform 1", "swap"),
            ("swap platform one 2", "swap"),
            ("swap platform 0 2", "swap"),
            ("flush", "flush"),
            ("register", "register"),
            ("unregister a <@UBOB|bob> extra", "unregister"),
        ],
    )
    def test_input_errors(self, text, operation):
        with pytest.raises(InputError) as info:
            parse_command(text)
        assert info.value.operation == operation
