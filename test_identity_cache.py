# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false

"""Tests for IdentityCache: TTL, stale fallback, eviction, superuser preload."""

import pytest

from oncallbot.core.exceptions import ExternalError, IdentityNotFoundError


class TestResolve:
    def test_miss_fetches_once(self, identities, slack):
        record = identities.resolve("UALICE")
        assert record.name == "alice"
        assert record.phone == "555-0100"
        assert slack.get_calls == ["UALICE"]

    def test_no_provider_call_within_ttl(self, identities, slack, clock):
        identities.resolve("UALICE")
        clock.advance(59)
        identities.resolve("UALICE")
        assert slack.get_calls == ["UALICE"]

    def test_exactly_one_provider_call_after_ttl(self, identities, slack, clock):
        identities.resolve("UALICE")
        clock.advance(60)
        slack.add_user("UALICE", "alice", "555-9999")
        record = identities.resolve("UALICE")
        identities.resolve("UALICE")
        assert slack.get_calls == ["UALICE", "UALICE"]
        assert record.phone == "555-9999"

    def test_stale_record_served_when_slack_fails(self, identities, slack, clock):
        identities.resolve("UALICE")
        clock.advance(120)
        slack.fail = True
        record = identities.resolve("UALICE")
        assert record is not None
        assert record.phone == "555-0100"

    def test_miss_propagates_slack_failure(self, identities, slack):
        slack.fail = True
        with pytest.raises(ExternalError):
            identities.resolve("UALICE")

    def test_forced_refresh_propagates_failure_and_keeps_record(self, identities, slack):
        identities.resolve("UALICE")
        slack.fail = True
        with pytest.raises(ExternalError):
            identities.resolve("UALICE", force=True)
        assert identities.get_cached("UALICE") is not None

    def test_forced_refresh_ignores_ttl(self, identities, slack):
        identities.resolve("UALICE")
        identities.resolve("UALICE", force=True)
        assert slack.get_calls == ["UALICE", "UALICE"]

    def test_unknown_user_is_none(self, identities):
        assert identities.resolve("UNOBODY") is None
        assert identities.size() == 0

    @pytest.mark.parametrize("flags", [{"deleted": True}, {"is_bot": True}])
    def test_inactive_accounts_are_evicted(self, identities, slack, clock, flags):
        identities.resolve("UBOB")
        slack.add_user("UBOB", "bob", "555-0101", **flags)
        clock.advance(61)
        assert identities.resolve("UBOB") is None
        assert identities.get_cached("UBOB") is None

    def test_refresh_keeps_local_fields(self, identities, clock):
        identities.adjust_manager_count("UALICE", 2)
        clock.advance(61)
        assert identities.resolve("UALICE").manager_count == 2


class TestManagerCount:
    def test_adjust(self, identities):
        identities.adjust_manager_count("UALICE", 1)
        assert identities.adjust_manager_count("UALICE", 1).manager_count == 2
        assert identities.adjust_manager_count("UALICE", -1).manager_count == 1

    def test_unknown_user(self, identities):
        with pytest.raises(IdentityNotFoundError):
            identities.adjust_manager_count("UNOBODY", 1)


class TestPreload:
    def test_marks_matching_accounts(self, identities, slack):
        unmatched = identities.preload_configured_exempt(["carol", "zed"])
        assert unmatched == ["zed"]
        assert identities.get_cached("UCAROL").is_superuser is True
        assert slack.list_calls == 1

    def test_inactive_match_is_consumed_without_grant(self, identities, slack):
        slack.add_user("UBOT", "deploybot", is_bot=True)
        assert identities.preload_configured_exempt(["deploybot"]) == []
        assert identities.get_cached("UBOT") is None

    def test_superuser_survives_refresh(self, identities, clock):
        identities.preload_configured_exempt(["carol"])
        clock.advance(61)
        assert identities.resolve("UCAROL").is_superuser is True

    def test_empty_list_skips_slack(self, identities, slack):
        assert identities.preload_configured_exempt([]) == []
        assert slack.list_calls == 0
