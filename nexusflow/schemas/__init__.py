"""Unified schema package for the NexusFlow trade network.

Quick usage:
    from nexusflow.schemas import AgentRecord, AgentRole, DirectoryQuery
"""

from .unified_models import (
    NETWORK_SOURCE,
    SYSTEM_SOURCE,
    AgentContext,
    AgentIdentity,
    AgentNode,
    AgentRecord,
    AgentRole,
    BaseRecordModel,
    BaseRuntimeModel,
    DirectoryQuery,
    EdgeType,
    EngineSnapshot,
    EngineState,
    GeoLocation,
    LogEntry,
    LogSeverity,
    NodeStatus,
    ProcurementIntent,
    Proposal,
    RelationEdge,
    RunOutcome,
    RunResult,
    WorkflowPhase,
)


__all__ = [
    "NETWORK_SOURCE",
    "SYSTEM_SOURCE",
    "AgentContext",
    "AgentIdentity",
    "AgentNode",
    "AgentRecord",
    "AgentRole",
    "BaseRecordModel",
    "BaseRuntimeModel",
    "DirectoryQuery",
    "EdgeType",
    "EngineSnapshot",
    "EngineState",
    "GeoLocation",
    "LogEntry",
    "LogSeverity",
    "NodeStatus",
    "ProcurementIntent",
    "Proposal",
    "RelationEdge",
    "RunOutcome",
    "RunResult",
    "WorkflowPhase",
]
