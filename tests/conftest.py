"""Pytest configuration and fixtures for NexusFlow tests."""

import asyncio

import pytest

from nexusflow.config import (
    NegotiationSettings,
    NexusFlowSettings,
    PacingSettings,
)
from nexusflow.core.agent_registry import AgentDirectory
from nexusflow.core.network import DEFAULT_AGENTS, build_directory, build_nodes
from nexusflow.core.orchestrator import OrchestrationEngine
from nexusflow.core.scheduler import ImmediateScheduler
from nexusflow.schemas.unified_models import (
    AgentContext,
    AgentIdentity,
    AgentNode,
    AgentRecord,
    AgentRole,
    GeoLocation,
    ProcurementIntent,
    Proposal,
)


BUSAN = GeoLocation(code="KR PUS", name="Busan Port", lat=35.10, lon=129.04)


def make_record(
    did: str,
    role: AgentRole,
    capabilities: list[str] | None = None,
    jurisdiction: str = "KR",
    location: GeoLocation | None = None,
    currency: str | None = None,
    fleet: str | None = None,
) -> AgentRecord:
    """Build an agent record with sensible defaults."""
    return AgentRecord(
        identity=AgentIdentity(did=did, role=role),
        capabilities=capabilities or [],
        context=AgentContext(
            jurisdiction=jurisdiction,
            currency=currency,
            location=location,
            fleet=fleet,
        ),
        endpoint=f"mcp://{did.split(':')[-1]}.example",
    )


def make_node(node_id: str, record: AgentRecord, label: str | None = None) -> AgentNode:
    """Wrap a record in an idle node."""
    return AgentNode(
        id=node_id, role=record.role, label=label or node_id.title(), record=record
    )


def buyer_node() -> AgentNode:
    return make_node(
        "buyer-01",
        make_record(
            "did:test:buyer",
            AgentRole.BUYER,
            ["procurement"],
            jurisdiction="US",
            currency="USD",
        ),
        label="Test Buyer",
    )


class FixedQuotes:
    """Quote source returning preset prices per node id."""

    def __init__(self, prices: dict[str, float], lead_time: int = 10):
        self.prices = prices
        self.lead_time = lead_time
        self.calls: list[str] = []

    def quote(self, node_id: str, record: AgentRecord) -> Proposal:
        self.calls.append(node_id)
        return Proposal(
            node_id=node_id, price=self.prices[node_id], lead_time=self.lead_time
        )


class FailingQuotes:
    """Quote source where every candidate fails to quote."""

    def __init__(self, error: Exception | None = None):
        self.error = error or ValueError("price feed offline")

    def quote(self, node_id: str, record: AgentRecord) -> Proposal:
        raise self.error


class BlockingScheduler:
    """Scheduler that parks the workflow until released."""

    def __init__(self):
        self.paused = asyncio.Event()
        self.release = asyncio.Event()

    async def pause(self, seconds: float) -> None:
        self.paused.set()
        await self.release.wait()


@pytest.fixture
def test_settings():
    """Settings with a fixed seed and no pacing."""
    return NexusFlowSettings(
        negotiation=NegotiationSettings(seed=1234),
        pacing=PacingSettings(scale=0.0),
    )


@pytest.fixture
def chip_intent():
    """Procurement intent for automotive chips."""
    return ProcurementIntent(
        item="Automotive MCU (AEC-Q100)",
        qty=5000,
        deadline="2026-12-31",
        capability="automotive_chips",
    )


@pytest.fixture
def reference_nodes():
    """The reference network: one buyer, three suppliers, two carriers."""
    return build_nodes(DEFAULT_AGENTS)


@pytest.fixture
def reference_directory(reference_nodes):
    """Directory holding every reference network record."""
    return build_directory(reference_nodes)


@pytest.fixture
def empty_directory():
    return AgentDirectory()


@pytest.fixture
def make_engine(test_settings):
    """Factory building an engine over explicit nodes."""

    def _make(nodes, directory=None, **kwargs):
        nodes = list(nodes)
        directory = directory if directory is not None else build_directory(nodes)
        kwargs.setdefault("settings", test_settings)
        kwargs.setdefault("scheduler", ImmediateScheduler())
        return OrchestrationEngine(directory, nodes, **kwargs)

    return _make


@pytest.fixture
def reference_engine(make_engine, reference_nodes, reference_directory):
    """Engine over the reference network."""
    return make_engine(reference_nodes, reference_directory)


@pytest.fixture
def record_factory():
    return make_record


@pytest.fixture
def node_factory():
    return make_node


@pytest.fixture
def buyer():
    return buyer_node()


@pytest.fixture
def fixed_quotes():
    return FixedQuotes


@pytest.fixture
def failing_quotes():
    return FailingQuotes


@pytest.fixture
def blocking_scheduler():
    return BlockingScheduler()


@pytest.fixture
def busan():
    return BUSAN
