"""Tests for report synthesis."""

from datetime import UTC, datetime, timedelta

import pytest

from research_swarm.models import Complexity, ResearchPlan, Session, SessionStatus, TaskResult, TaskStatus
from research_swarm.synthesis import build_report, collect, dedupe_sources, source_domains

START = datetime(2025, 6, 1, 12, 0, tzinfo=UTC)


def _session(*results: TaskResult) -> Session:
    return Session(
        query="Coffee production in Brazil",
        status=SessionStatus.SYNTHESIZING,
        start_time=START,
        plan=ResearchPlan(complexity=Complexity.MODERATE, strategy="Multi-perspective analysis", target_workers=3),
        task_results=list(results),
    )


def _done(task_id: str, findings: list[str], sources: list[str]) -> TaskResult:
    return TaskResult(task_id=task_id, role="r", findings=findings, sources=sources, status=TaskStatus.COMPLETE)


def _failed(task_id: str) -> TaskResult:
    return TaskResult(task_id=task_id, role="r", status=TaskStatus.FAILED, error="Search failure: down")


class TestHelpers:
    def test__dedupe_sources__keeps_first_occurrence_order(self) -> None:
        assert dedupe_sources(["b", "a", "b", "c", "a"]) == ["b", "a", "c"]

    def test__dedupe_sources__is_exact_string(self) -> None:
        assert dedupe_sources(["https://a.com", "https://a.com/"]) == ["https://a.com", "https://a.com/"]

    def test__source_domains__counts_hostnames(self) -> None:
        sources = ["https://a.com/1", "https://a.com/2", "https://b.org/x", "not a url", "http://[::1"]
        assert source_domains(sources) == {"a.com", "b.org"}

    def test__collect__ignores_failed_tasks(self) -> None:
        failed = _failed("t-2")
        failed.findings = ["should not appear"]
        session = _session(_done("t-1", ["f1", "f2"], ["https://a.com", "https://b.com"]), failed)

        findings, sources = collect(session)

        assert findings == ["f1", "f2"]
        assert sources == ["https://a.com", "https://b.com"]


class TestBuildReport:
    """Tests for build_report()."""

    def test__sections__present_in_order(self) -> None:
        session = _session(_done("t-1", ["f1"], ["https://a.com/1"]))
        report = build_report(session, ["f1"], ["https://a.com/1"], completed_at=START + timedelta(seconds=42))

        headings = [line for line in report.splitlines() if line.startswith("#")]
        assert headings == [
            "# Research Report: Coffee production in Brazil",
            "## Executive Summary",
            "## Research Methodology",
            "## Detailed Findings",
            "### Finding 1",
            "## Sources",
            "## Analysis Quality",
        ]
        assert "Research completed in 42 seconds using 1 specialized workers." in report
        assert "- **Complexity Assessment:** moderate" in report
        assert "- **Research Strategy:** Multi-perspective analysis" in report

    def test__executive_summary__top_five_truncated(self) -> None:
        findings = [f"finding {i} " + "x" * 300 for i in range(7)]
        report = build_report(_session(), findings, [], style="executive")

        summary = report.split("## Research Methodology")[0]
        assert "5. finding 4" in summary
        assert "6. finding 5" not in summary
        assert f"1. {findings[0][:200]}...\n" in summary

    def test__executive_style__omits_detailed_findings(self) -> None:
        report = build_report(_session(), ["f1"], [], style="executive")
        assert "## Detailed Findings" not in report

    def test__academic_style__uses_references_heading(self) -> None:
        report = build_report(_session(), ["f1"], ["https://a.com"], style="academic")
        assert "## References\n1. https://a.com" in report
        assert "## Sources" not in report

    def test__sources__capped_at_twenty_but_counted_in_full(self) -> None:
        sources = [f"https://site{i}.com/p" for i in range(25)]
        report = build_report(_session(), [], sources)

        assert "20. https://site19.com/p" in report
        assert "https://site20.com/p" not in report
        assert "...and 5 more" in report
        assert "**Total Sources:** 25" in report
        assert "**Source Diversity:** 25 unique domains" in report

    def test__duplicate_sources__cited_once(self) -> None:
        report = build_report(_session(), [], ["https://a.com/1", "https://a.com/1", "https://a.com/2"])
        assert report.count("https://a.com/1") == 1
        assert "**Total Sources:** 2" in report
        assert "**Source Diversity:** 1 unique domains" in report

    def test__quality__reports_success_and_failure_counts(self) -> None:
        session = _session(_done("t-1", ["f"], []), _done("t-2", ["g"], []), _failed("t-3"))
        report = build_report(session, ["f", "g"], [])
        assert "- **Task Outcome:** 2 successful, 1 failed" in report
        assert "Unfinished Tasks" not in report

    def test__empty_session__renders_placeholders(self) -> None:
        report = build_report(_session(), [], [])
        assert "No findings were gathered." in report
        assert "No sources were collected." in report
        assert "Research completed in 0 seconds using 0 specialized workers." in report

    @pytest.mark.parametrize("style", ["executive", "detailed", "academic"])
    def test__same_inputs__same_report(self, style: str) -> None:
        session = _session(_done("t-1", ["f1"], ["https://a.com"]))
        args = (session, ["f1"], ["https://a.com"])
        completed = START + timedelta(seconds=5)
        assert build_report(*args, style=style, completed_at=completed) == build_report(
            *args, style=style, completed_at=completed
        )
