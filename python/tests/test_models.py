"""Unit tests for models and host command parsing"""

import pytest

from claimer.models import (
    AuthStatusRequest,
    ClaimIssueCommand,
    ClaimResult,
    CommandResult,
    ConfigChangeCommand,
    Issue,
    ListReadyIssuesRequest,
    parse_command,
)


class TestIssue:
    """Test Issue dataclass"""

    def test_from_gh_payload(self):
        issue = Issue.from_payload({
            "number": 12,
            "title": "Add retries",
            "url": "https://github.com/o/r/issues/12",
            "labels": [{"name": "Ready for Plan"}, {"name": "bug"}]
        })

        assert issue.number == 12
        assert issue.labels == ["Ready for Plan", "bug"]

    def test_from_host_payload_with_plain_labels(self):
        issue = Issue.from_payload({"number": "3", "title": "T", "labels": ["a", "b"]})

        assert issue.number == 3
        assert issue.url == ""
        assert issue.labels == ["a", "b"]

    def test_non_positive_number_rejected(self):
        with pytest.raises(ValueError):
            Issue.from_payload({"number": 0, "title": "T"})

    def test_has_any_label(self):
        issue = Issue(1, "T", labels=["Ready for Plan"])

        assert issue.has_any_label(["Claimed by Agent", "Ready for Plan"])
        assert not issue.has_any_label(["Claimed by Agent"])


class TestClaimResult:
    """Test ClaimResult serialization"""

    def test_success_to_dict(self):
        assert ClaimResult(True, "issue-1-x").to_dict() == {"success": True, "branchName": "issue-1-x"}

    def test_failure_to_dict(self):
        assert ClaimResult(False, "", "boom").to_dict() == {
            "success": False, "branchName": "", "error": "boom"
        }


def test_command_result_output():
    result = CommandResult(exit_code=0, stdout="out\n", stderr="err\n")

    assert result.ok
    assert result.output == "out\n\nerr"


class TestParseCommand:
    """Test host message parsing"""

    def test_claim_issue(self):
        command = parse_command({"command": "claimIssue", "issue": {"number": 5, "title": "T"}})

        assert command == ClaimIssueCommand(issue=Issue(5, "T"))

    def test_auth_status(self):
        assert parse_command({"command": "checkAuthStatus"}) == AuthStatusRequest()

    def test_update_config(self):
        command = parse_command({"command": "updateConfig", "settings": {"enableIssuePolling": False}})

        assert command == ConfigChangeCommand(settings={"enableIssuePolling": False})

    def test_list_issues(self):
        assert parse_command({"command": "listIssues"}) == ListReadyIssuesRequest()

    @pytest.mark.parametrize("payload", [
        {"command": "dance"},
        {"command": "claimIssue"},
        {"command": "claimIssue", "issue": {"title": "no number"}},
        {"command": "updateConfig", "settings": 5},
        ["not", "an", "object"],
    ])
    def test_invalid(self, payload):
        with pytest.raises(ValueError):
            parse_command(payload)
