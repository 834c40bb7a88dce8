"""NexusFlow - Decentralized Trade Agent Network.

This package contains the agent directory and the orchestration engine of a
marketplace where buyers, suppliers and logistics carriers discover each
other by capability and run a staged negotiation protocol.

Core Components:
- core.agent_registry: capability-based agent directory
- core.agent_protocol: JSON-RPC 2.0 shaped envelope codec
- core.orchestrator: staged intent/discovery/negotiation/settlement engine
- core.ledger: bounded audit ledger
- schemas: shared data model
"""

from .core import (
    AgentDirectory,
    AsyncioScheduler,
    ImmediateScheduler,
    LogLedger,
    OrchestrationEngine,
    ProtocolCodec,
    build_directory,
    load_network,
)
from .schemas import (
    AgentNode,
    AgentRecord,
    AgentRole,
    DirectoryQuery,
    EdgeType,
    NodeStatus,
    ProcurementIntent,
    RunOutcome,
    RunResult,
)


__version__ = "0.1.0"

__all__ = [
    "AgentDirectory",
    "AgentNode",
    "AgentRecord",
    "AgentRole",
    "AsyncioScheduler",
    "DirectoryQuery",
    "EdgeType",
    "ImmediateScheduler",
    "LogLedger",
    "NodeStatus",
    "OrchestrationEngine",
    "ProcurementIntent",
    "ProtocolCodec",
    "RunOutcome",
    "RunResult",
    "build_directory",
    "load_network",
]
