"""Standardized agent message protocol.

This module defines the JSON-RPC 2.0 shaped envelopes agents exchange during
a procurement run, and the codec that builds them.
"""

import random
import time
from collections.abc import Callable
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator


JSONRPC_VERSION = "2.0"

METHOD_PROCURE = "supply.procure"
METHOD_BOOK = "logistics.book"

COMPLIANCE_STANDARDS = ("ISO-26262", "AEC-Q100")
DEFAULT_INCOTERMS = "FOB"
DEFAULT_SERVICE_LEVEL = "express"


class RpcEnvelope(BaseModel):
    """Common part of every envelope."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    jsonrpc: Literal["2.0"] = JSONRPC_VERSION
    id: str | int

    def to_dict(self) -> dict[str, Any]:
        """Serialize to the wire shape, omitting unset optional members."""
        return self.model_dump(mode="json", exclude_none=True)


class RpcRequest(RpcEnvelope):
    """Request envelope carrying a method call."""

    method: str
    params: dict[str, Any] = Field(default_factory=dict)


class RpcError(BaseModel):
    """Error member of a response envelope."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    code: int
    message: str
    data: Any | None = None


class RpcResponse(RpcEnvelope):
    """Response envelope carrying either a result or an error."""

    result: dict[str, Any] | None = None
    error: RpcError | None = None

    @model_validator(mode="after")
    def check_result_or_error(self) -> "RpcResponse":
        """A response carries exactly one of result and error."""
        if (self.result is None) == (self.error is None):
            raise ValueError("Response must carry exactly one of result or error")
        return self

    @property
    def ok(self) -> bool:
        return self.error is None


class ProtocolCodec:
    """Builder of protocol envelopes.

    The codec holds no state beyond its injected id sources. Identifiers
    combine a millisecond clock reading with a random suffix in 0..999;
    two envelopes built in the same millisecond can collide, and nothing
    checks for it.
    """

    def __init__(
        self,
        rng: random.Random | None = None,
        clock: Callable[[], float] = time.time,
    ):
        """Initialize codec with optional id sources."""
        self._rng = rng or random.Random()
        self._clock = clock

    def new_id(self) -> str:
        """Generate a request identifier."""
        millis = int(self._clock() * 1000)
        return f"req_{millis}_{self._rng.randrange(1000)}"

    def create_intent(self, item: str, qty: int, deadline: str) -> RpcRequest:
        """Procurement intent broadcast by a buyer."""
        return RpcRequest(
            id=self.new_id(),
            method=METHOD_PROCURE,
            params={
                "item": item,
                "qty": qty,
                "deadline": deadline,
                "standards": list(COMPLIANCE_STANDARDS),
            },
        )

    def create_offer(
        self,
        request_id: str | int,
        price: float,
        currency: str,
        lead_time: int,
    ) -> RpcResponse:
        """Supplier quote answering a procurement intent."""
        return RpcResponse(
            id=request_id,
            result={
                "status": "accepted",
                "quote": {
                    "price_per_unit": price,
                    "currency": currency,
                    "incoterms": DEFAULT_INCOTERMS,
                    "lead_time_days": lead_time,
                },
            },
        )

    def create_booking(
        self, origin_code: str, dest_code: str, weight_kg: float
    ) -> RpcRequest:
        """Logistics booking request from the winning supplier."""
        return RpcRequest(
            id=self.new_id(),
            method=METHOD_BOOK,
            params={
                "origin_locode": origin_code,
                "dest_locode": dest_code,
                "cargo_weight": weight_kg,
                "service_level": DEFAULT_SERVICE_LEVEL,
            },
        )

    def create_booking_confirmation(
        self,
        request_id: str | int,
        waybill: str,
        vessel: str,
        eta_days: int,
    ) -> RpcResponse:
        """Carrier confirmation of a booking."""
        return RpcResponse(
            id=request_id,
            result={
                "status": "confirmed",
                "waybill": waybill,
                "vessel": vessel,
                "eta_days": eta_days,
            },
        )

    def create_error(
        self,
        request_id: str | int,
        code: int,
        message: str,
        data: Any | None = None,
    ) -> RpcResponse:
        """Generic error response."""
        return RpcResponse(
            id=request_id, error=RpcError(code=code, message=message, data=data)
        )
