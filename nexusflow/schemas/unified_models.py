"""Unified models for the NexusFlow trade network.

This module holds every record shared between the agent directory, the
protocol codec and the orchestration engine, built on Pydantic v2 with
``StrEnum`` enums so values serialize as their plain wire strings.
"""

from datetime import datetime
from enum import StrEnum
from typing import Any

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
)

# ============================================================================
# UNIFIED ENUMS
# ============================================================================


class AgentRole(StrEnum):
    """Role an agent plays in the marketplace."""

    BUYER = "buyer"
    SUPPLIER = "supplier"
    LOGISTICS = "logistics"


class NodeStatus(StrEnum):
    """Runtime status of an agent node, written only by the engine."""

    IDLE = "idle"
    WORKING = "working"
    NEGOTIATING = "negotiating"
    SUCCESS = "success"
    ERROR = "error"


class EdgeType(StrEnum):
    """Kind of relation drawn between two agent nodes."""

    QUERY = "query"
    NEGOTIATE = "negotiate"
    CONTRACT = "contract"
    LOGISTICS = "logistics"
    REJECT = "reject"


class LogSeverity(StrEnum):
    """Severity of an audit ledger entry."""

    INFO = "info"
    SUCCESS = "success"
    ERROR = "error"
    WARNING = "warning"
    QUERY = "query"
    ACTION = "action"


class EngineState(StrEnum):
    """Single-flight state of the orchestration engine."""

    IDLE = "idle"
    RUNNING = "running"


class WorkflowPhase(StrEnum):
    """Phase the engine is currently executing."""

    IDLE = "idle"
    INTENT = "intent"
    DISCOVERY = "discovery"
    NEGOTIATION = "negotiation"
    SETTLEMENT = "settlement"


class RunOutcome(StrEnum):
    """How a call to ``start()`` ended."""

    COMPLETED = "completed"
    DEGRADED = "degraded"
    NO_CANDIDATES = "no_candidates"
    NO_PROPOSALS = "no_proposals"
    BUSY = "busy"
    FAILED = "failed"


# Reserved ledger sources that are not agent node ids
SYSTEM_SOURCE = "system"
NETWORK_SOURCE = "network"


# ============================================================================
# UNIFIED CONFIGURATION
# ============================================================================


class UnifiedConfig:
    """Shared model configurations.

    Identity records are frozen once built; runtime entities allow
    assignment but still validate it.
    """

    RECORD_CONFIG = ConfigDict(
        extra="forbid",
        frozen=True,
        use_enum_values=False,
        populate_by_name=True,
    )

    RUNTIME_CONFIG = ConfigDict(
        extra="forbid",
        validate_assignment=True,
        use_enum_values=False,
        populate_by_name=True,
    )


class BaseRecordModel(BaseModel):
    """Base for immutable directory and protocol records."""

    model_config = UnifiedConfig.RECORD_CONFIG


class BaseRuntimeModel(BaseModel):
    """Base for mutable runtime entities owned by the engine."""

    model_config = UnifiedConfig.RUNTIME_CONFIG


# ============================================================================
# DIRECTORY RECORDS
# ============================================================================


class GeoLocation(BaseRecordModel):
    """Geographic anchor of an agent, keyed by UN/LOCODE."""

    code: str = Field(..., min_length=1, description="UN/LOCODE, e.g. 'TW KHH'")
    name: str
    lat: float = Field(..., ge=-90.0, le=90.0)
    lon: float = Field(..., ge=-180.0, le=180.0)


class AgentContext(BaseRecordModel):
    """Operating context of an agent."""

    jurisdiction: str = Field(..., min_length=1)
    currency: str | None = None
    location: GeoLocation | None = None
    fleet: str | None = None


class AgentIdentity(BaseRecordModel):
    """Decentralized identity of an agent."""

    did: str = Field(..., min_length=1, description="Decentralized identifier")
    role: AgentRole


class AgentRecord(BaseRecordModel):
    """Directory entry describing one registered agent."""

    identity: AgentIdentity
    capabilities: tuple[str, ...] = Field(default_factory=tuple)
    context: AgentContext
    endpoint: str

    @field_validator("capabilities", mode="before")
    @classmethod
    def dedupe_capabilities(cls, v: Any) -> tuple[str, ...]:
        """Drop repeated tags while keeping declaration order."""
        if v is None:
            return ()
        return tuple(dict.fromkeys(v))

    @property
    def did(self) -> str:
        return self.identity.did

    @property
    def role(self) -> AgentRole:
        return self.identity.role

    def has_capability(self, capability: str) -> bool:
        return capability in self.capabilities


class DirectoryQuery(BaseRecordModel):
    """Directory lookup filters; omitted filters match everything."""

    role: AgentRole | None = None
    capability: str | None = None
    jurisdiction: str | None = None

    @field_validator("role", "capability", "jurisdiction", mode="before")
    @classmethod
    def blank_is_wildcard(cls, v: Any) -> Any:
        """Treat an empty filter the same as an omitted one."""
        if v == "":
            return None
        return v

    def matches(self, record: AgentRecord) -> bool:
        """Return True when the record satisfies every supplied filter."""
        if self.role is not None and record.role != self.role:
            return False
        if (
            self.jurisdiction is not None
            and record.context.jurisdiction != self.jurisdiction
        ):
            return False
        if self.capability is not None and not record.has_capability(
            self.capability
        ):
            return False
        return True


# ============================================================================
# RUNTIME ENTITIES
# ============================================================================


class AgentNode(BaseRuntimeModel):
    """Runtime entity bound to one directory record."""

    id: str = Field(..., min_length=1)
    role: AgentRole
    label: str
    status: NodeStatus = NodeStatus.IDLE
    record: AgentRecord
    x: float = 0.0
    y: float = 0.0


class RelationEdge(BaseRuntimeModel):
    """Relation between two agent nodes drawn during a run."""

    id: str
    source: str = Field(..., alias="from")
    target: str = Field(..., alias="to")
    type: EdgeType
    label: str | None = None


class Proposal(BaseRecordModel):
    """A candidate's quote collected during negotiation."""

    node_id: str
    price: float = Field(..., ge=0)
    lead_time: int = Field(..., ge=0, description="Lead time in days")


class LogEntry(BaseRecordModel):
    """One audit ledger entry."""

    id: int
    timestamp: datetime = Field(default_factory=datetime.now)
    source: str
    message: str
    severity: LogSeverity = LogSeverity.INFO
    payload: dict[str, Any] | None = None


# ============================================================================
# WORKFLOW MODELS
# ============================================================================


class ProcurementIntent(BaseRecordModel):
    """What the buyer wants to procure in one run."""

    item: str = Field(..., min_length=1)
    qty: int = Field(..., ge=1)
    deadline: str
    capability: str = Field(
        ..., min_length=1, description="Capability tag suppliers must offer"
    )


class RunResult(BaseRecordModel):
    """Summary returned by ``OrchestrationEngine.start``."""

    outcome: RunOutcome
    request_id: str | None = None
    winner_id: str | None = None
    logistics_id: str | None = None
    proposals: tuple[Proposal, ...] = Field(default_factory=tuple)

    @property
    def contract_signed(self) -> bool:
        return self.winner_id is not None


class EngineSnapshot(BaseRecordModel):
    """Read-only copy of the engine state surface."""

    nodes: tuple[AgentNode, ...]
    edges: tuple[RelationEdge, ...]
    logs: tuple[LogEntry, ...]
    state: EngineState
    phase: WorkflowPhase

    @property
    def is_running(self) -> bool:
        return self.state is EngineState.RUNNING

    def node(self, node_id: str) -> AgentNode | None:
        return next((n for n in self.nodes if n.id == node_id), None)

    def edges_of_type(self, edge_type: EdgeType) -> list[RelationEdge]:
        return [e for e in self.edges if e.type is edge_type]
