"""Test suite for core/agent_protocol.py.

Tests envelope models and the ProtocolCodec builders.
"""

import random

import pytest
from pydantic import ValidationError

from nexusflow.core.agent_protocol import (
    METHOD_BOOK,
    METHOD_PROCURE,
    ProtocolCodec,
    RpcError,
    RpcRequest,
    RpcResponse,
)


@pytest.fixture
def codec():
    """Codec with a frozen clock and seeded suffix source."""
    return ProtocolCodec(rng=random.Random(7), clock=lambda: 1_700_000_000.5)


class TestIdentifiers:
    """Test request identifier generation."""

    def test_id_format(self, codec):
        """Test ids combine the millisecond clock and a bounded suffix."""
        request_id = codec.new_id()

        prefix, millis, suffix = request_id.split("_")
        assert prefix == "req"
        assert millis == "1700000000500"
        assert 0 <= int(suffix) < 1000

    def test_ids_follow_clock(self):
        """Test successive ids track the injected clock."""
        ticks = iter([1.0, 2.5])
        codec = ProtocolCodec(rng=random.Random(1), clock=lambda: next(ticks))

        assert codec.new_id().startswith("req_1000_")
        assert codec.new_id().startswith("req_2500_")


class TestRequests:
    """Test request builders."""

    def test_create_intent(self, codec):
        """Test the procurement intent request shape."""
        request = codec.create_intent("Automotive MCU", 5000, "2026-12-31")

        assert isinstance(request, RpcRequest)
        wire = request.to_dict()
        assert wire["jsonrpc"] == "2.0"
        assert wire["method"] == METHOD_PROCURE
        assert wire["params"] == {
            "item": "Automotive MCU",
            "qty": 5000,
            "deadline": "2026-12-31",
            "standards": ["ISO-26262", "AEC-Q100"],
        }
        assert wire["id"].startswith("req_")

    def test_create_booking(self, codec):
        """Test the logistics booking request shape."""
        wire = codec.create_booking("KR PUS", "US SJC", 500).to_dict()

        assert wire["method"] == METHOD_BOOK
        assert wire["params"] == {
            "origin_locode": "KR PUS",
            "dest_locode": "US SJC",
            "cargo_weight": 500,
            "service_level": "express",
        }


class TestResponses:
    """Test response builders."""

    def test_create_offer_echoes_request_id(self, codec):
        """Test an offer answers the given request id."""
        offer = codec.create_offer("req_1_2", 465.0, "USD", 21)

        assert offer.ok
        assert offer.to_dict() == {
            "jsonrpc": "2.0",
            "id": "req_1_2",
            "result": {
                "status": "accepted",
                "quote": {
                    "price_per_unit": 465.0,
                    "currency": "USD",
                    "incoterms": "FOB",
                    "lead_time_days": 21,
                },
            },
        }

    def test_create_booking_confirmation(self, codec):
        """Test the carrier confirmation shape."""
        wire = codec.create_booking_confirmation(
            "req_9_9", "WB-123456", "Triple-E Class", 18
        ).to_dict()

        assert wire["id"] == "req_9_9"
        assert wire["result"] == {
            "status": "confirmed",
            "waybill": "WB-123456",
            "vessel": "Triple-E Class",
            "eta_days": 18,
        }

    def test_create_error(self, codec):
        """Test error responses omit result and unset data."""
        response = codec.create_error(42, -32001, "Quote unavailable")

        assert not response.ok
        assert response.to_dict() == {
            "jsonrpc": "2.0",
            "id": 42,
            "error": {"code": -32001, "message": "Quote unavailable"},
        }

    def test_create_error_with_data(self, codec):
        """Test error data is carried when given."""
        wire = codec.create_error("req_1_1", -32602, "bad", {"field": "qty"}).to_dict()

        assert wire["error"]["data"] == {"field": "qty"}

    def test_response_needs_result_or_error(self):
        """Test a response must carry exactly one of result and error."""
        with pytest.raises(ValidationError):
            RpcResponse(id="req_1_1")
        with pytest.raises(ValidationError):
            RpcResponse(
                id="req_1_1",
                result={"status": "accepted"},
                error=RpcError(code=-1, message="both"),
            )

    def test_envelopes_are_immutable(self, codec):
        """Test envelopes cannot be edited after construction."""
        request = codec.create_intent("MCU", 1, "2026-12-31")

        with pytest.raises(ValidationError):
            request.method = "other.method"

    def test_version_is_fixed(self):
        """Test only JSON-RPC 2.0 envelopes validate."""
        with pytest.raises(ValidationError):
            RpcRequest(jsonrpc="1.0", id=1, method=METHOD_PROCURE)
