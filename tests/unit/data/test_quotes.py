"""Comprehensive tests for quotes.py utilities.

This module tests quote synthesis bounds, per-supplier modifiers and
lowest-price winner selection.
"""

import random

import pytest

from nexusflow.schemas.unified_models import AgentRole, Proposal
from nexusflow.utils.quotes import (
    LEAD_TIMES,
    PRICE_MODIFIERS,
    QuoteCalculator,
    select_winner,
)


@pytest.fixture
def calculator():
    return QuoteCalculator(base_price=450.0, max_jitter=20, rng=random.Random(5))


class TestQuoteCalculator:
    """Test quote synthesis."""

    def test_listed_supplier_price_range(self, calculator, record_factory):
        """Test prices stay within base + modifier + [0, jitter]."""
        tsmc = record_factory("did:nanda:tsmc_fab_12", AgentRole.SUPPLIER)

        prices = [calculator.price_for(tsmc) for _ in range(200)]

        assert min(prices) >= 490.0
        assert max(prices) <= 510.0
        assert all(price == int(price) for price in prices)

    def test_unlisted_supplier_uses_default_modifier(self, calculator, record_factory):
        record = record_factory("did:test:unknown", AgentRole.SUPPLIER)

        prices = [calculator.price_for(record) for _ in range(100)]

        assert all(475.0 <= price <= 495.0 for price in prices)
        assert calculator.lead_time_for(record) == 30

    def test_listed_lead_times(self, calculator, record_factory):
        for did, days in LEAD_TIMES.items():
            record = record_factory(did, AgentRole.SUPPLIER)
            assert calculator.lead_time_for(record) == days

    def test_zero_jitter_is_deterministic(self, record_factory):
        calculator = QuoteCalculator(
            base_price=450.0, max_jitter=0, rng=random.Random()
        )
        posco = record_factory("did:nanda:posco_busan", AgentRole.SUPPLIER)

        assert calculator.price_for(posco) == 450.0 + PRICE_MODIFIERS[posco.did]

    def test_same_seed_same_quotes(self, record_factory):
        """Test quotes are reproducible from a seed."""
        record = record_factory("did:nanda:hyundai_auto_01", AgentRole.SUPPLIER)

        def draw(seed):
            calc = QuoteCalculator(
                base_price=450.0, max_jitter=20, rng=random.Random(seed)
            )
            return [calc.price_for(record) for _ in range(10)]

        assert draw(42) == draw(42)

    def test_quote_builds_proposal(self, calculator, record_factory):
        record = record_factory("did:nanda:hyundai_auto_01", AgentRole.SUPPLIER)

        proposal = calculator.quote("supplier-c", record)

        assert proposal.node_id == "supplier-c"
        assert 465.0 <= proposal.price <= 485.0
        assert proposal.lead_time == 21

    def test_custom_tables(self, record_factory):
        calculator = QuoteCalculator(
            base_price=100.0,
            max_jitter=0,
            rng=random.Random(),
            modifiers={"did:test:x": 7.5},
            lead_times={"did:test:x": 3},
        )
        record = record_factory("did:test:x", AgentRole.SUPPLIER)

        assert calculator.quote("x", record) == Proposal(
            node_id="x", price=107.5, lead_time=3
        )

    def test_negative_jitter_rejected(self):
        with pytest.raises(ValueError, match="Jitter bound"):
            QuoteCalculator(base_price=450.0, max_jitter=-1, rng=random.Random())


class TestSelectWinner:
    """Test lowest-price selection."""

    @staticmethod
    def proposals(*pairs):
        return [
            Proposal(node_id=node_id, price=price, lead_time=10)
            for node_id, price in pairs
        ]

    def test_lowest_price_wins(self):
        winner = select_winner(
            self.proposals(("a", 510.0), ("b", 470.0), ("c", 495.0))
        )

        assert winner.node_id == "b"

    def test_tie_goes_to_earliest(self):
        winner = select_winner(
            self.proposals(("a", 500.0), ("b", 480.0), ("c", 480.0))
        )

        assert winner.node_id == "b"

    def test_single_proposal(self):
        assert select_winner(self.proposals(("a", 1.0))).node_id == "a"

    def test_no_proposals(self):
        assert select_winner([]) is None
