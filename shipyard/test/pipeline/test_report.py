"""Tests for shipyard.pipeline.report module."""

from __future__ import annotations

from shipyard.pipeline.errors import BuildFailure, GateConflict
from shipyard.pipeline.report import BranchReport, LegReport, RunReport, describe_failure


def _ok(target: str) -> LegReport:
    return LegReport(target=target, status="success", stage="attach", files=(f"{target}.tar.gz",))


def _bad(target: str) -> LegReport:
    return LegReport(target=target, status="failed", stage="build", error="boom")


class TestDescribeFailure:
    def test_failure_value(self) -> None:
        failure = BuildFailure(target="A", message="compile error", detail="error[E0425]")
        assert describe_failure(failure) == ("compile error", "error[E0425]")

    def test_value_without_hint(self) -> None:
        assert describe_failure(GateConflict(version="1", message="nope")) == ("nope", None)

    def test_exception(self) -> None:
        message, hint = describe_failure(RuntimeError("kaboom"))
        assert message.startswith("unexpected error")
        assert "kaboom" in message
        assert hint is None

    def test_none(self) -> None:
        assert describe_failure(None) == ("unknown failure", None)


class TestRunStatus:
    def test_everything_shipped(self) -> None:
        report = RunReport(
            version="1.0.0",
            legs=(_ok("A"), _ok("B")),
            branches=(BranchReport("registry", "success"), BranchReport("notify", "success")),
            release_state="published",
        )
        assert report.status == "all_success"
        assert report.leg_status == "all_success"

    def test_failed_leg(self) -> None:
        report = RunReport(version="1.0.0", legs=(_ok("A"), _bad("B")), release_state="published")
        assert report.status == "partial_failure"
        assert report.succeeded == ("A",)
        assert report.failed == ("B",)

    def test_failed_branch(self) -> None:
        report = RunReport(
            version="1.0.0",
            legs=(_ok("A"),),
            branches=(BranchReport("notify", "failed", "webhook delivery failed"),),
            release_state="published",
        )
        assert report.status == "partial_failure"
        assert report.leg_status == "all_success"

    def test_draft_left_behind(self) -> None:
        report = RunReport(version="1.0.0", legs=(_ok("A"),), release_state="draft")
        assert report.status == "partial_failure"

    def test_no_release(self) -> None:
        assert RunReport(version="1.0.0", gate_error="HTTP 401").status == "all_failure"

    def test_no_leg_succeeded(self) -> None:
        report = RunReport(version="1.0.0", legs=(_bad("A"),), release_state="published")
        assert report.status == "all_failure"


class TestOtherKinds:
    def test_leg_rerun(self) -> None:
        assert RunReport(version="1", kind="leg", legs=(_ok("A"),)).status == "all_success"
        assert RunReport(version="1", kind="leg", legs=(_bad("A"),)).status == "all_failure"
        assert RunReport(version="1", kind="leg").status == "all_failure"

    def test_manual_publish(self) -> None:
        done = RunReport(version="1", kind="publish", release_state="published")
        assert done.status == "all_success"

        partial = RunReport(
            version="1",
            kind="publish",
            release_state="published",
            branches=(BranchReport("registry", "failed", "npm publish failed"),),
        )
        assert partial.status == "partial_failure"

        conflict = RunReport(
            version="1", kind="publish", release_state="published", gate_error="already published"
        )
        assert conflict.status == "all_failure"


def test_to_dict_lists_branches() -> None:
    report = RunReport(
        version="2.0.0",
        legs=(_ok("A"),),
        branches=(BranchReport("registry", "skipped", "release not published"),),
        release_state="draft",
    )

    data = report.to_dict()

    assert data["distribution"] == [
        {"branch": "registry", "status": "skipped", "error": "release not published"}
    ]
    assert data["targets"] == [
        {
            "target": "A",
            "status": "success",
            "stage": "attach",
            "error": None,
            "hint": None,
            "files": ["A.tar.gz"],
        }
    ]
