"""Orchestration engine for end-to-end procurement runs.

This module drives one transaction through the trade network as an explicit
state machine (intent, discovery, negotiation, settlement) built on a
LangGraph workflow. The engine owns the runtime entities (node statuses,
relation edges, audit ledger) and is their only writer.
"""

import asyncio
import itertools
import logging
import random
from collections.abc import Callable, Iterable
from datetime import date, timedelta

from langgraph.graph import END, START, StateGraph

from ..config import NexusFlowSettings, get_settings
from ..schemas.unified_models import (
    NETWORK_SOURCE,
    SYSTEM_SOURCE,
    AgentNode,
    AgentRole,
    DirectoryQuery,
    EdgeType,
    EngineSnapshot,
    EngineState,
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
from ..utils.quotes import QuoteCalculator, select_winner
from .agent_protocol import ProtocolCodec, RpcResponse
from .agent_registry import AgentDirectory
from .ledger import LogLedger
from .network import build_directory, load_network
from .scheduler import AsyncioScheduler, Scheduler
from .state import Candidate, WorkflowState, initial_state


logger = logging.getLogger(__name__)

QUOTE_FAILED = -32001

Observer = Callable[[EngineSnapshot], None]


class OrchestrationEngine:
    """Single-flight engine running the staged negotiation workflow.

    Phases run strictly one after another, and candidates inside a phase
    are handled in directory order. Every failure inside the workflow ends
    as a run outcome plus ledger entries; ``start()`` never raises for
    domain failures.
    """

    def __init__(
        self,
        directory: AgentDirectory,
        nodes: Iterable[AgentNode],
        *,
        buyer_id: str | None = None,
        settings: NexusFlowSettings | None = None,
        scheduler: Scheduler | None = None,
        codec: ProtocolCodec | None = None,
        ledger: LogLedger | None = None,
        quotes: QuoteCalculator | None = None,
        rng: random.Random | None = None,
    ):
        """Initialize the engine over a directory and its agent nodes.

        Raises:
            ValueError: If node ids repeat or the buyer node is unknown

        """
        self.settings = settings or get_settings()
        self.directory = directory

        self._nodes: dict[str, AgentNode] = {}
        self._node_by_did: dict[str, str] = {}
        for node in nodes:
            if node.id in self._nodes:
                raise ValueError(f"Duplicate node id '{node.id}'")
            self._nodes[node.id] = node.model_copy(deep=True)
            self._node_by_did.setdefault(node.record.did, node.id)

        self.buyer_id = buyer_id or self.settings.buyer_id
        buyer = self._nodes.get(self.buyer_id)
        if buyer is None:
            raise ValueError(f"Buyer node '{self.buyer_id}' is not in the network")
        if buyer.role is not AgentRole.BUYER:
            raise ValueError(f"Node '{self.buyer_id}' is a {buyer.role}, not a buyer")

        negotiation = self.settings.negotiation
        self._rng = rng or random.Random(negotiation.seed)
        self.quotes = quotes or QuoteCalculator(
            base_price=negotiation.base_price,
            max_jitter=negotiation.max_jitter,
            rng=self._rng,
            default_modifier=negotiation.default_modifier,
            default_lead_time=negotiation.default_lead_time_days,
        )
        self.codec = codec or ProtocolCodec()
        self.scheduler = scheduler or AsyncioScheduler(scale=self.settings.pacing.scale)
        self.ledger = ledger or LogLedger(capacity=self.settings.ledger.capacity)

        self._edges: list[RelationEdge] = []
        self._state = EngineState.IDLE
        self._phase = WorkflowPhase.IDLE
        self._observers: list[Observer] = []
        self._runs = itertools.count(1)

        self.workflow = self._create_workflow()

        logger.info(
            f"OrchestrationEngine initialized with {len(self._nodes)} nodes, "
            f"buyer '{self.buyer_id}'"
        )

    @classmethod
    def from_settings(
        cls,
        settings: NexusFlowSettings | None = None,
        scheduler: Scheduler | None = None,
    ) -> "OrchestrationEngine":
        """Build the network, directory and engine from settings."""
        settings = settings or get_settings()
        nodes = load_network(settings.network_file)
        directory = build_directory(nodes)
        return cls(directory, nodes, settings=settings, scheduler=scheduler)

    # ------------------------------------------------------------------
    # State surface
    # ------------------------------------------------------------------

    @property
    def state(self) -> EngineState:
        return self._state

    @property
    def phase(self) -> WorkflowPhase:
        return self._phase

    @property
    def is_running(self) -> bool:
        return self._state is EngineState.RUNNING

    @property
    def nodes(self) -> list[AgentNode]:
        return [node.model_copy(deep=True) for node in self._nodes.values()]

    @property
    def edges(self) -> list[RelationEdge]:
        return [edge.model_copy() for edge in self._edges]

    @property
    def logs(self) -> list[LogEntry]:
        """Ledger entries, newest first."""
        return self.ledger.entries()

    def snapshot(self) -> EngineSnapshot:
        """Read-only copy of nodes, edges, ledger and run state."""
        return EngineSnapshot(
            nodes=tuple(self.nodes),
            edges=tuple(self.edges),
            logs=tuple(self.ledger.entries()),
            state=self._state,
            phase=self._phase,
        )

    def subscribe(self, observer: Observer) -> Callable[[], None]:
        """Register an observer notified with a snapshot after each mutation.

        Returns:
            Callable that removes the observer

        """
        self._observers.append(observer)

        def unsubscribe() -> None:
            if observer in self._observers:
                self._observers.remove(observer)

        return unsubscribe

    def select_node(self, node_id: str) -> AgentNode | None:
        """Inspection hook for presentation; has no effect on engine state."""
        node = self._nodes.get(node_id)
        logger.debug(f"Node selected for inspection: {node_id}")
        return node.model_copy(deep=True) if node else None

    def default_intent(self) -> ProcurementIntent:
        """Procurement intent built from settings."""
        cfg = self.settings.intent
        deadline = date.today() + timedelta(days=cfg.deadline_days)
        return ProcurementIntent(
            item=cfg.item,
            qty=cfg.qty,
            deadline=deadline.isoformat(),
            capability=cfg.capability,
        )

    def reset(self, clear_log: bool = False) -> bool:
        """Return every node to idle and drop all edges.

        Returns:
            False if a run is in progress and nothing was reset

        """
        if self.is_running:
            logger.warning("Reset requested while a run is in progress; ignored")
            return False
        self._reset_topology()
        if clear_log:
            self.ledger.clear()
        self._notify()
        return True

    # ------------------------------------------------------------------
    # Inbound command
    # ------------------------------------------------------------------

    async def start(self, intent: ProcurementIntent | None = None) -> RunResult:
        """Run one procurement transaction end to end.

        Args:
            intent: What to procure; defaults to ``default_intent()``

        Returns:
            Run summary; ``RunOutcome.BUSY`` if a run is already in flight

        """
        # check-and-set with no await in between keeps this single-flight
        if self._state is EngineState.RUNNING:
            self._log(
                SYSTEM_SOURCE,
                "Start rejected: a workflow is already in progress",
                LogSeverity.WARNING,
            )
            return RunResult(outcome=RunOutcome.BUSY)

        self._state = EngineState.RUNNING
        run_number = next(self._runs)
        intent = intent or self.default_intent()
        logger.info(f"Starting run #{run_number} for {intent.qty} x {intent.item}")

        try:
            final_state = await self.workflow.ainvoke(initial_state(intent))
            result = RunResult(
                outcome=final_state.get("outcome") or RunOutcome.COMPLETED,
                request_id=final_state.get("request_id"),
                winner_id=final_state.get("winner_id"),
                logistics_id=final_state.get("logistics_id"),
                proposals=tuple(final_state.get("proposals", [])),
            )
        except Exception as e:
            logger.error(f"Run #{run_number} aborted by unexpected error: {e}")
            self._set_status(self.buyer_id, NodeStatus.ERROR)
            self._log(SYSTEM_SOURCE, f"Workflow aborted: {e}", LogSeverity.ERROR)
            result = RunResult(outcome=RunOutcome.FAILED)
        finally:
            self._state = EngineState.IDLE
            self._phase = WorkflowPhase.IDLE
            self._notify()

        logger.info(f"Run #{run_number} finished: {result.outcome}")
        return result

    # ------------------------------------------------------------------
    # Workflow graph
    # ------------------------------------------------------------------

    def _create_workflow(self):
        """Create the LangGraph workflow for the staged transaction."""
        workflow = StateGraph(WorkflowState)

        workflow.add_node("broadcast_intent", self._broadcast_intent)
        workflow.add_node("discover", self._discover_suppliers)
        workflow.add_node("negotiate", self._negotiate)
        workflow.add_node("settle", self._settle)

        def route_after_discovery(state: WorkflowState) -> str:
            return "negotiate" if state["candidates"] else END

        def route_after_negotiation(state: WorkflowState) -> str:
            return "settle" if state["winner_id"] else END

        workflow.add_edge(START, "broadcast_intent")
        workflow.add_edge("broadcast_intent", "discover")
        workflow.add_conditional_edges(
            "discover", route_after_discovery, {"negotiate": "negotiate", END: END}
        )
        workflow.add_conditional_edges(
            "negotiate", route_after_negotiation, {"settle": "settle", END: END}
        )
        workflow.add_edge("settle", END)

        return workflow.compile()

    async def _broadcast_intent(self, state: WorkflowState) -> dict:
        """Intent phase: reset the topology and broadcast the request."""
        self._phase = WorkflowPhase.INTENT
        intent = state["intent"]

        self._reset_topology()
        self._notify()

        request = self.codec.create_intent(intent.item, intent.qty, intent.deadline)
        self._set_status(self.buyer_id, NodeStatus.WORKING)
        self._log(
            self.buyer_id,
            f"Broadcasting intent: {intent.qty} x {intent.item} "
            f"(deadline {intent.deadline}, capability '{intent.capability}')",
            LogSeverity.ACTION,
            payload=request.to_dict(),
        )

        await self.scheduler.pause(self.settings.pacing.intent_settle)
        return {"request_id": str(request.id)}

    async def _discover_suppliers(self, state: WorkflowState) -> dict:
        """Discovery phase: find suppliers offering the capability."""
        self._phase = WorkflowPhase.DISCOVERY
        capability = state["intent"].capability

        records = self.directory.find(
            DirectoryQuery(role=AgentRole.SUPPLIER, capability=capability)
        )

        candidates: list[Candidate] = []
        for record in records:
            node_id = self._node_by_did.get(record.did)
            if node_id is None:
                self._log(
                    NETWORK_SOURCE,
                    f"Skipping {record.did}: no agent node is bound to it",
                    LogSeverity.WARNING,
                )
                continue
            self._add_edge(self.buyer_id, node_id, EdgeType.QUERY)
            self._set_status(node_id, NodeStatus.NEGOTIATING)
            candidates.append({"node_id": node_id, "record": record})

        if not candidates:
            self._set_status(self.buyer_id, NodeStatus.ERROR)
            self._log(
                self.buyer_id,
                f"Discovery failed: no supplier offers '{capability}'",
                LogSeverity.ERROR,
            )
            return {"candidates": [], "outcome": RunOutcome.NO_CANDIDATES}

        self._log(
            NETWORK_SOURCE,
            f"Discovery matched {len(candidates)} supplier(s) for '{capability}'",
            LogSeverity.QUERY,
        )
        await self.scheduler.pause(self.settings.pacing.discovery)
        return {"candidates": candidates}

    async def _negotiate(self, state: WorkflowState) -> dict:
        """Negotiation phase: collect quotes and award the contract."""
        self._phase = WorkflowPhase.NEGOTIATION
        request_id = state["request_id"]
        candidates = state["candidates"]
        pause = self.settings.pacing.per_candidate

        proposals: list[Proposal] = []
        if self.settings.negotiation.concurrent:
            # quotes drawn in candidate order so the jitter sequence matches
            # sequential mode; only the pacing overlaps
            quotes = [self._quote(candidate) for candidate in candidates]
            await asyncio.gather(*(self.scheduler.pause(pause) for _ in candidates))
            for candidate, quote in zip(candidates, quotes, strict=True):
                self._record_quote(request_id, candidate, quote, proposals)
        else:
            for candidate in candidates:
                await self.scheduler.pause(pause)
                quote = self._quote(candidate)
                self._record_quote(request_id, candidate, quote, proposals)

        winner = select_winner(proposals)
        if winner is None:
            self._set_status(self.buyer_id, NodeStatus.ERROR)
            self._log(
                self.buyer_id,
                "Negotiation failed: no proposals received",
                LogSeverity.ERROR,
            )
            return {"proposals": [], "outcome": RunOutcome.NO_PROPOSALS}

        self._award(winner, candidates, proposals)
        await self.scheduler.pause(self.settings.pacing.award)
        return {"proposals": proposals, "winner_id": winner.node_id}

    def _quote(self, candidate: Candidate) -> Proposal | ValueError:
        """Synthesize a quote, returning the error when the candidate fails."""
        try:
            return self.quotes.quote(candidate["node_id"], candidate["record"])
        except ValueError as e:
            logger.warning(f"Quote synthesis failed for {candidate['node_id']}: {e}")
            return e

    def _record_quote(
        self,
        request_id: str,
        candidate: Candidate,
        quote: Proposal | ValueError,
        proposals: list[Proposal],
    ) -> None:
        node_id = candidate["node_id"]
        label = self._nodes[node_id].label

        if isinstance(quote, ValueError):
            error = self.codec.create_error(
                request_id, QUOTE_FAILED, f"Quote unavailable: {quote}"
            )
            self._retype_edge(self.buyer_id, node_id, EdgeType.REJECT, "no quote")
            self._set_status(node_id, NodeStatus.ERROR)
            self._log(
                node_id,
                f"{label} could not quote",
                LogSeverity.ERROR,
                payload=error.to_dict(),
            )
            return

        currency = (
            candidate["record"].context.currency
            or self.settings.negotiation.default_currency
        )
        offer: RpcResponse = self.codec.create_offer(
            request_id, quote.price, currency, quote.lead_time
        )
        self._retype_edge(
            self.buyer_id, node_id, EdgeType.NEGOTIATE, f"{currency} {quote.price:,.2f}"
        )
        proposals.append(quote)
        self._log(
            node_id,
            f"Offer from {label}: {currency} {quote.price:,.2f}/unit, "
            f"lead time {quote.lead_time} days",
            LogSeverity.INFO,
            payload=offer.to_dict(),
        )

    def _award(
        self,
        winner: Proposal,
        candidates: list[Candidate],
        proposals: list[Proposal],
    ) -> None:
        """Sign with the winner and release every other candidate."""
        winner_label = self._nodes[winner.node_id].label
        quoted = {proposal.node_id for proposal in proposals}

        self._set_status(winner.node_id, NodeStatus.SUCCESS)
        self._set_status(self.buyer_id, NodeStatus.SUCCESS)
        self._retype_edge(self.buyer_id, winner.node_id, EdgeType.CONTRACT, "signed")
        self._log(
            self.buyer_id,
            f"Accepted offer from {winner_label} at {winner.price:,.2f}/unit "
            f"({winner.lead_time} days)",
            LogSeverity.SUCCESS,
        )

        for candidate in candidates:
            node_id = candidate["node_id"]
            if node_id == winner.node_id:
                continue
            self._set_status(node_id, NodeStatus.IDLE)
            self._remove_edge(self.buyer_id, node_id)
            label = self._nodes[node_id].label
            if node_id in quoted:
                message = f"Declined offer from {label}"
            else:
                message = f"Released {label} (no quote)"
            self._log(self.buyer_id, message, LogSeverity.INFO)

    async def _settle(self, state: WorkflowState) -> dict:
        """Settlement phase: book freight with the first logistics provider."""
        self._phase = WorkflowPhase.SETTLEMENT
        winner_id = state["winner_id"]
        cfg = self.settings.settlement

        carrier_id = None
        for record in self.directory.find(DirectoryQuery(role=AgentRole.LOGISTICS)):
            carrier_id = self._node_by_did.get(record.did)
            if carrier_id is not None:
                break

        if carrier_id is None:
            self._log(
                SYSTEM_SOURCE,
                "CRITICAL: no logistics provider available; contract is signed "
                "but the shipment is unbooked",
                LogSeverity.ERROR,
            )
            return {"outcome": RunOutcome.DEGRADED}

        winner = self._nodes[winner_id]
        carrier = self._nodes[carrier_id]
        origin = self._origin_code(winner)

        booking = self.codec.create_booking(
            origin, cfg.destination_locode, cfg.cargo_weight_kg
        )
        self._add_edge(winner_id, carrier_id, EdgeType.LOGISTICS, "booking")
        self._set_status(carrier_id, NodeStatus.WORKING)
        self._log(
            winner_id,
            f"Booking freight {origin} -> {cfg.destination_locode} "
            f"({cfg.cargo_weight_kg:g} kg) with {carrier.label}",
            LogSeverity.ACTION,
            payload=booking.to_dict(),
        )

        await self.scheduler.pause(self.settings.pacing.booking)

        vessel = carrier.record.context.fleet or cfg.default_vessel
        waybill = f"WB-{self._rng.randrange(100000, 1000000)}"
        confirmation = self.codec.create_booking_confirmation(
            booking.id, waybill, vessel, cfg.eta_days
        )
        self._log(
            carrier_id,
            f"Shipment confirmed: waybill {waybill} aboard {vessel}, "
            f"ETA {cfg.eta_days} days",
            LogSeverity.SUCCESS,
            payload=confirmation.to_dict(),
        )
        self._set_status(carrier_id, NodeStatus.SUCCESS)
        self._log(
            SYSTEM_SOURCE,
            f"Settlement complete: {winner.label} contracted, freight booked "
            f"with {carrier.label}",
            LogSeverity.SUCCESS,
        )
        return {"logistics_id": carrier_id, "outcome": RunOutcome.COMPLETED}

    # ------------------------------------------------------------------
    # Mutation helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _origin_code(node: AgentNode) -> str:
        location = node.record.context.location
        return location.code if location else node.record.context.jurisdiction

    @staticmethod
    def _edge_id(source: str, target: str) -> str:
        return f"{source}->{target}"

    def _reset_topology(self) -> None:
        self._edges.clear()
        for node in self._nodes.values():
            node.status = NodeStatus.IDLE

    def _set_status(self, node_id: str, status: NodeStatus) -> None:
        self._nodes[node_id].status = status
        self._notify()

    def _add_edge(
        self,
        source: str,
        target: str,
        edge_type: EdgeType,
        label: str | None = None,
    ) -> RelationEdge:
        for node_id in (source, target):
            if node_id not in self._nodes:
                raise ValueError(f"Edge endpoint '{node_id}' is not a known node")
        edge = RelationEdge(
            id=self._edge_id(source, target),
            source=source,
            target=target,
            type=edge_type,
            label=label,
        )
        self._edges.append(edge)
        self._notify()
        return edge

    def _find_edge(self, source: str, target: str) -> RelationEdge | None:
        edge_id = self._edge_id(source, target)
        return next((edge for edge in self._edges if edge.id == edge_id), None)

    def _retype_edge(
        self,
        source: str,
        target: str,
        edge_type: EdgeType,
        label: str | None = None,
    ) -> None:
        edge = self._find_edge(source, target)
        if edge is None:
            self._add_edge(source, target, edge_type, label)
            return
        edge.type = edge_type
        edge.label = label
        self._notify()

    def _remove_edge(self, source: str, target: str) -> None:
        edge = self._find_edge(source, target)
        if edge is not None:
            self._edges.remove(edge)
            self._notify()

    def _log(
        self,
        source: str,
        message: str,
        severity: LogSeverity,
        payload: dict | None = None,
    ) -> None:
        self.ledger.append(source, message, severity, payload)
        self._notify()

    def _notify(self) -> None:
        if not self._observers:
            return
        snapshot = self.snapshot()
        for observer in list(self._observers):
            try:
                observer(snapshot)
            except Exception as e:
                logger.error(f"Observer {observer!r} failed: {e}")
