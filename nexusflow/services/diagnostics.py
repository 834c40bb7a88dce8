"""Directory self-test.

Runs the directory contract against a scratch directory so operators can
check a network definition without touching a live engine.
"""

import logging
from collections.abc import Sequence

from pydantic import BaseModel, Field

from ..core.agent_registry import AgentDirectory
from ..schemas.unified_models import AgentRecord, AgentRole, DirectoryQuery


logger = logging.getLogger(__name__)


class DiagnosticCheck(BaseModel):
    """Result of one directory check."""

    name: str
    passed: bool
    detail: str = ""


class DiagnosticsReport(BaseModel):
    """All checks of one diagnostics run."""

    checks: list[DiagnosticCheck] = Field(default_factory=list)

    @property
    def passed(self) -> bool:
        return all(check.passed for check in self.checks)

    @property
    def failures(self) -> list[DiagnosticCheck]:
        return [check for check in self.checks if not check.passed]


def _expected(records: Sequence[AgentRecord], query: DirectoryQuery) -> list[str]:
    return [record.did for record in records if query.matches(record)]


def run_directory_diagnostics(records: Sequence[AgentRecord]) -> DiagnosticsReport:
    """Exercise registration, lookup and reset on a scratch directory.

    Args:
        records: Records to load; DIDs should be unique

    Returns:
        Report with one check per directory property

    """
    report = DiagnosticsReport()
    directory = AgentDirectory()

    def check(name: str, passed: bool, detail: str = "") -> None:
        report.checks.append(DiagnosticCheck(name=name, passed=passed, detail=detail))
        if not passed:
            logger.warning(f"Directory check '{name}' failed: {detail}")

    inserted = [directory.register(record) for record in records]
    unique = len({record.did for record in records})
    check(
        "register",
        directory.count() == unique and sum(inserted) == unique,
        f"{directory.count()} of {len(records)} record(s) registered",
    )

    if records:
        before = directory.count()
        duplicate_accepted = directory.register(records[0])
        check(
            "duplicate_rejected",
            not duplicate_accepted and directory.count() == before,
            f"re-registering {records[0].did} returned {duplicate_accepted}",
        )

    registered = directory.list_records()
    check(
        "find_all",
        [r.did for r in directory.find()] == [r.did for r in registered],
        "unfiltered lookup returns every record in registration order",
    )

    for role in AgentRole:
        query = DirectoryQuery(role=role)
        found = [r.did for r in directory.find(query)]
        check(
            f"role:{role}",
            found == _expected(registered, query),
            f"{len(found)} match(es)",
        )

    for capability in directory.list_capabilities():
        query = DirectoryQuery(capability=capability)
        found = [r.did for r in directory.find(query)]
        check(
            f"capability:{capability}",
            bool(found) and found == _expected(registered, query),
            f"{len(found)} match(es)",
        )

    for jurisdiction in sorted({r.context.jurisdiction for r in registered}):
        query = DirectoryQuery(jurisdiction=jurisdiction)
        found = [r.did for r in directory.find(query)]
        check(
            f"jurisdiction:{jurisdiction}",
            bool(found) and found == _expected(registered, query),
            f"{len(found)} match(es)",
        )

    if registered:
        sample = registered[0]
        query = DirectoryQuery(
            role=sample.role,
            jurisdiction=sample.context.jurisdiction,
            capability=sample.capabilities[0] if sample.capabilities else None,
        )
        found = [r.did for r in directory.find(query)]
        check(
            "combined_filters",
            sample.did in found and found == _expected(registered, query),
            f"{len(found)} match(es) for {query.model_dump(exclude_none=True)}",
        )

    missing = directory.find(DirectoryQuery(capability="__nexusflow_no_such_tag__"))
    check("empty_result", missing == [], f"{len(missing)} match(es)")

    directory.clear()
    check("clear", directory.count() == 0, f"{directory.count()} record(s) left")

    return report
