"""Core orchestration components.

This module provides the directory, protocol codec, audit ledger, pacing
policies and the orchestration engine of the trade network.
"""

from .agent_protocol import ProtocolCodec, RpcError, RpcRequest, RpcResponse
from .agent_registry import AgentDirectory
from .ledger import LogLedger
from .network import build_directory, build_nodes, default_nodes, load_network
from .orchestrator import OrchestrationEngine
from .scheduler import AsyncioScheduler, ImmediateScheduler, Scheduler
from .state import Candidate, WorkflowState


__all__ = [
    "AgentDirectory",
    "AsyncioScheduler",
    "Candidate",
    "ImmediateScheduler",
    "LogLedger",
    "OrchestrationEngine",
    "ProtocolCodec",
    "RpcError",
    "RpcRequest",
    "RpcResponse",
    "Scheduler",
    "WorkflowState",
    "build_directory",
    "build_nodes",
    "default_nodes",
    "load_network",
]
