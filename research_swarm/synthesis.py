"""Final report synthesis from a session's task results."""

from collections.abc import Iterable
from datetime import datetime
from urllib.parse import urlparse

from research_swarm.models import ReportStyle, Session, TaskStatus

SUMMARY_FINDINGS = 5
SUMMARY_FINDING_CHARS = 200
MAX_LISTED_SOURCES = 20


def dedupe_sources(sources: Iterable[str]) -> list[str]:
    """Exact-string deduplication, first occurrence wins. URLs are not canonicalised."""
    return list(dict.fromkeys(sources))


def source_domains(sources: Iterable[str]) -> set[str]:
    domains = set()
    for source in sources:
        try:
            host = urlparse(source).hostname
        except ValueError:
            continue
        if host:
            domains.add(host)
    return domains


def collect(session: Session) -> tuple[list[str], list[str]]:
    """Flatten findings and deduplicated sources; failed tasks contribute nothing."""
    contributing = [r for r in session.task_results if r.status is not TaskStatus.FAILED]
    findings = [finding for r in contributing for finding in r.findings]
    sources = dedupe_sources(source for r in contributing for source in r.sources)
    return findings, sources


def _truncate(text: str, limit: int) -> str:
    return f"{text[:limit]}..." if len(text) > limit else text


def build_report(
    session: Session,
    findings: list[str],
    sources: list[str],
    style: ReportStyle = "detailed",
    completed_at: datetime | None = None,
) -> str:
    """Render the markdown report. Pure: identical inputs give identical output."""
    unique_sources = dedupe_sources(sources)
    results = session.task_results
    succeeded = sum(1 for r in results if r.status is TaskStatus.COMPLETE)
    failed = sum(1 for r in results if r.status is TaskStatus.FAILED)
    working = len(results) - succeeded - failed
    end = completed_at or session.end_time
    duration = round((end - session.start_time).total_seconds()) if end else 0

    complexity = session.plan.complexity.value if session.plan else "Not specified"
    strategy = session.plan.strategy if session.plan else "Multi-agent coordination"

    key_findings = "\n".join(
        f"{i}. {_truncate(f, SUMMARY_FINDING_CHARS)}" for i, f in enumerate(findings[:SUMMARY_FINDINGS], start=1)
    )

    sections = [
        f"# Research Report: {session.query}",
        "## Executive Summary\n"
        f"Research completed in {duration} seconds using {len(results)} specialized workers.\n\n"
        f"**Key Findings:**\n{key_findings or 'No findings were gathered.'}",
        "## Research Methodology\n"
        f"- **Complexity Assessment:** {complexity}\n"
        f"- **Workers Deployed:** {len(results)}\n"
        f"- **Total Sources:** {len(unique_sources)}\n"
        f"- **Research Strategy:** {strategy}",
    ]

    if style != "executive":
        detailed = "\n\n".join(f"### Finding {i}\n{f}" for i, f in enumerate(findings, start=1))
        sections.append(f"## Detailed Findings\n{detailed or 'No findings were gathered.'}")

    listed = "\n".join(f"{i}. {s}" for i, s in enumerate(unique_sources[:MAX_LISTED_SOURCES], start=1))
    if len(unique_sources) > MAX_LISTED_SOURCES:
        listed += f"\n...and {len(unique_sources) - MAX_LISTED_SOURCES} more"
    heading = "## References" if style == "academic" else "## Sources"
    sections.append(f"{heading}\n{listed or 'No sources were collected.'}")

    quality = [
        f"- **Task Outcome:** {succeeded} successful, {failed} failed",
        f"- **Successful Tasks:** {succeeded}",
        f"- **Failed Tasks:** {failed}",
    ]
    if working:
        quality.append(f"- **Unfinished Tasks:** {working}")
    quality.append(f"- **Source Diversity:** {len(source_domains(unique_sources))} unique domains")
    sections.append("## Analysis Quality\n" + "\n".join(quality))

    sections.append("---\n*Generated by research_swarm*")
    return "\n\n".join(sections) + "\n"
