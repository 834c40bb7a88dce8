"""Quote synthesis and winner selection for negotiation.

Suppliers in the reference network do not price for real; their quotes are
synthesized from a base price, a per-supplier modifier and bounded jitter.
"""

import random
from collections.abc import Mapping, Sequence

from ..schemas.unified_models import AgentRecord, Proposal


# Per-supplier price modifiers and lead times, keyed by DID
PRICE_MODIFIERS: dict[str, float] = {
    "did:nanda:tsmc_fab_12": 40.0,
    "did:nanda:posco_busan": 10.0,
    "did:nanda:hyundai_auto_01": 15.0,
}

LEAD_TIMES: dict[str, int] = {
    "did:nanda:tsmc_fab_12": 14,
    "did:nanda:posco_busan": 21,
    "did:nanda:hyundai_auto_01": 21,
}


class QuoteCalculator:
    """Synthesizes candidate quotes from an injected random source."""

    def __init__(
        self,
        base_price: float,
        max_jitter: int,
        rng: random.Random,
        default_modifier: float = 25.0,
        default_lead_time: int = 30,
        modifiers: Mapping[str, float] | None = None,
        lead_times: Mapping[str, int] | None = None,
    ):
        if max_jitter < 0:
            raise ValueError(f"Jitter bound must be >= 0, got {max_jitter}")
        self.base_price = base_price
        self.max_jitter = max_jitter
        self.default_modifier = default_modifier
        self.default_lead_time = default_lead_time
        self.modifiers = dict(PRICE_MODIFIERS if modifiers is None else modifiers)
        self.lead_times = dict(LEAD_TIMES if lead_times is None else lead_times)
        self._rng = rng

    def price_for(self, record: AgentRecord) -> float:
        """Base price plus the supplier modifier plus jitter in [0, max_jitter]."""
        modifier = self.modifiers.get(record.did, self.default_modifier)
        jitter = self._rng.randint(0, self.max_jitter)
        return round(self.base_price + modifier + jitter, 2)

    def lead_time_for(self, record: AgentRecord) -> int:
        return self.lead_times.get(record.did, self.default_lead_time)

    def quote(self, node_id: str, record: AgentRecord) -> Proposal:
        return Proposal(
            node_id=node_id,
            price=self.price_for(record),
            lead_time=self.lead_time_for(record),
        )


def select_winner(proposals: Sequence[Proposal]) -> Proposal | None:
    """Cheapest proposal; ties go to the earliest one in the sequence."""
    if not proposals:
        return None
    # min() keeps the first of equal keys
    return min(proposals, key=lambda proposal: proposal.price)
