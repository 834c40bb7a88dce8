"""Unified Configuration Settings Management for NexusFlow.

This module provides hierarchical configuration for the orchestration engine
using pydantic-settings, with validation, environment variable support and
global settings caching.

Features:
- Nested BaseSettings classes per engine concern
- Environment variable support with NEXUSFLOW_ prefix and ``__`` nesting
- Field bounds and cross-field validation
- Support for .env files
"""

import logging
from functools import lru_cache
from pathlib import Path
from typing import Any

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class PacingSettings(BaseSettings):
    """Presentation pacing between workflow steps (seconds).

    These delays only let observers follow the run; setting ``scale`` to 0
    removes them without changing ordering or outcomes.
    """

    model_config = SettingsConfigDict(env_prefix="NEXUSFLOW_PACING_")

    intent_settle: float = Field(
        1.5, ge=0.0, le=60.0, description="Pause after the intent broadcast"
    )
    discovery: float = Field(
        1.0, ge=0.0, le=60.0, description="Pause after discovery completes"
    )
    per_candidate: float = Field(
        0.8, ge=0.0, le=60.0, description="Pause before each candidate quotes"
    )
    award: float = Field(
        1.0, ge=0.0, le=60.0, description="Pause after the contract is awarded"
    )
    booking: float = Field(
        2.0, ge=0.0, le=60.0, description="Pause while the carrier confirms"
    )
    scale: float = Field(
        1.0, ge=0.0, le=10.0, description="Multiplier applied to every pause"
    )


class IntentSettings(BaseSettings):
    """Default procurement intent used when ``start()`` gets none."""

    model_config = SettingsConfigDict(env_prefix="NEXUSFLOW_INTENT_")

    item: str = Field("Automotive MCU (AEC-Q100)", description="Item to procure")
    qty: int = Field(5000, ge=1, description="Quantity to procure")
    capability: str = Field(
        "automotive_chips", description="Capability tag suppliers must offer"
    )
    deadline_days: int = Field(
        30, ge=1, le=365, description="Deadline offset from today in days"
    )


class NegotiationSettings(BaseSettings):
    """Quote synthesis and negotiation mode."""

    model_config = SettingsConfigDict(env_prefix="NEXUSFLOW_NEGOTIATION_")

    base_price: float = Field(450.0, gt=0.0, description="Base unit price")
    default_modifier: float = Field(
        25.0, ge=0.0, description="Price modifier for unlisted candidates"
    )
    max_jitter: int = Field(
        20, ge=0, le=10000, description="Upper bound of random price jitter"
    )
    default_lead_time_days: int = Field(
        30, ge=1, le=365, description="Lead time for unlisted candidates"
    )
    default_currency: str = Field(
        "USD", min_length=3, max_length=3, description="Quote currency fallback"
    )
    seed: int | None = Field(
        None, description="Seed for the jitter source; None draws from entropy"
    )
    concurrent: bool = Field(
        False, description="Collect quotes concurrently (ordering is preserved)"
    )


class SettlementSettings(BaseSettings):
    """Logistics booking parameters."""

    model_config = SettingsConfigDict(env_prefix="NEXUSFLOW_SETTLEMENT_")

    destination_locode: str = Field(
        "US SJC", description="Fixed destination UN/LOCODE for bookings"
    )
    cargo_weight_kg: float = Field(
        500.0, gt=0.0, le=1_000_000.0, description="Fixed cargo weight"
    )
    default_vessel: str = Field(
        "Maersk Mc-Kinney Moller", description="Vessel when carrier has no fleet"
    )
    eta_days: int = Field(18, ge=1, le=365, description="Quoted transit time")


class LedgerSettings(BaseSettings):
    """Audit ledger configuration."""

    model_config = SettingsConfigDict(env_prefix="NEXUSFLOW_LEDGER_")

    capacity: int = Field(
        50, ge=1, le=10000, description="Entries kept in the ring buffer"
    )


class NexusFlowSettings(BaseSettings):
    """Main configuration combining all engine settings.

    This is the root configuration class and the global configuration
    interface for the trade network.
    """

    pacing: PacingSettings = Field(default_factory=PacingSettings)
    intent: IntentSettings = Field(default_factory=IntentSettings)
    negotiation: NegotiationSettings = Field(default_factory=NegotiationSettings)
    settlement: SettlementSettings = Field(default_factory=SettlementSettings)
    ledger: LedgerSettings = Field(default_factory=LedgerSettings)

    buyer_id: str = Field("buyer-01", description="Node id of the buyer agent")
    network_file: Path | None = Field(
        None, description="Optional YAML file describing the agent network"
    )

    log_level: str = Field(
        "WARNING", description="Logging level (DEBUG, INFO, WARNING, ERROR)"
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        env_prefix="NEXUSFLOW_",
        extra="ignore",
        validate_default=True,
        case_sensitive=False,
        populate_by_name=True,
    )

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Normalize and check the logging level name."""
        level = v.strip().upper()
        if level not in logging.getLevelNamesMapping():
            raise ValueError(f"Unknown log level: {v}")
        return level

    @model_validator(mode="after")
    def validate_configuration(self) -> "NexusFlowSettings":
        """Perform cross-field consistency checks."""
        if self.negotiation.max_jitter >= self.negotiation.base_price:
            raise ValueError("Price jitter bound must be below the base price")
        return self

    def describe(self) -> dict[str, Any]:
        """JSON-ready view of the settings, nested by section."""
        return self.model_dump(mode="json")


@lru_cache(maxsize=1)
def get_settings() -> NexusFlowSettings:
    """Get cached global settings instance.

    Returns:
        Global NexusFlowSettings instance

    """
    return NexusFlowSettings()


__all__ = [
    "IntentSettings",
    "LedgerSettings",
    "NegotiationSettings",
    "NexusFlowSettings",
    "PacingSettings",
    "SettlementSettings",
    "get_settings",
]
