"""Reference agent network and composition helpers.

The default population mirrors the demo trade network: one buyer, three
suppliers and two logistics carriers anchored at real ports. A YAML file of
the same shape can replace it.
"""

import logging
from collections.abc import Iterable
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from ..schemas.unified_models import AgentNode, GeoLocation
from .agent_registry import AgentDirectory


logger = logging.getLogger(__name__)


LOCATIONS: dict[str, GeoLocation] = {
    "SHANGHAI": GeoLocation(code="CN SHA", name="Shanghai Port", lat=31.23, lon=121.47),
    "ROTTERDAM": GeoLocation(
        code="NL RTM", name="Port of Rotterdam", lat=51.92, lon=4.47
    ),
    "HAMBURG": GeoLocation(code="DE HAM", name="Port of Hamburg", lat=53.54, lon=9.99),
    "KAOHSIUNG": GeoLocation(
        code="TW KHH", name="Kaohsiung Port", lat=22.62, lon=120.27
    ),
    "BUSAN": GeoLocation(code="KR PUS", name="Busan Port", lat=35.10, lon=129.04),
    "FREMONT": GeoLocation(
        code="US SJC", name="Fremont Factory", lat=37.54, lon=-121.98
    ),
}


def _location(key: str) -> dict[str, Any]:
    return LOCATIONS[key].model_dump()


DEFAULT_AGENTS: list[dict[str, Any]] = [
    {
        "id": "buyer-01",
        "label": "Tesla Procurement",
        "x": 400,
        "y": 80,
        "record": {
            "identity": {"did": "did:nanda:tesla_procure_x", "role": "buyer"},
            "capabilities": ["procurement", "contract_signing", "payment_swift"],
            "context": {
                "jurisdiction": "US",
                "currency": "USD",
                "location": _location("FREMONT"),
            },
            "endpoint": "mcp://buyer.tesla.ai",
        },
    },
    {
        "id": "supplier-a",
        "label": "TSMC (Taiwan)",
        "x": 200,
        "y": 350,
        "record": {
            "identity": {"did": "did:nanda:tsmc_fab_12", "role": "supplier"},
            "capabilities": ["semiconductors", "automotive_chips", "iso_26262"],
            "context": {"jurisdiction": "TW", "location": _location("KAOHSIUNG")},
            "endpoint": "mcp://fab12.tsmc.com",
        },
    },
    {
        "id": "supplier-b",
        "label": "Posco (Korea)",
        "x": 600,
        "y": 350,
        "record": {
            "identity": {"did": "did:nanda:posco_busan", "role": "supplier"},
            "capabilities": ["steel_rolling", "high_tensile"],
            "context": {"jurisdiction": "KR", "location": _location("BUSAN")},
            "endpoint": "mcp://api.posco.co.kr",
        },
    },
    {
        "id": "logistics-a",
        "label": "Maersk Global",
        "x": 400,
        "y": 550,
        "record": {
            "identity": {"did": "did:nanda:maersk_line", "role": "logistics"},
            "capabilities": ["sea_freight", "customs_brokerage"],
            "context": {"jurisdiction": "GLOBAL", "fleet": "Triple-E Class"},
            "endpoint": "mcp://api.maersk.com/booking",
        },
    },
    {
        "id": "logistics-b",
        "label": "DHL Global Freight",
        "x": 600,
        "y": 550,
        "record": {
            "identity": {"did": "did:nanda:dhl_global_freight", "role": "logistics"},
            "capabilities": [
                "global_freight",
                "customs_clearance",
                "delivery_tracking",
            ],
            "context": {"jurisdiction": "DE", "location": _location("HAMBURG")},
            "endpoint": "mcp://logistics.dhl.com",
        },
    },
    {
        "id": "supplier-c",
        "label": "Hyundai Motor (Korea)",
        "x": 800,
        "y": 350,
        "record": {
            "identity": {"did": "did:nanda:hyundai_auto_01", "role": "supplier"},
            "capabilities": [
                "automotive_components",
                "battery_systems",
                "ev_platforms",
                "automotive_chips",
            ],
            "context": {"jurisdiction": "KR", "location": _location("BUSAN")},
            "endpoint": "mcp://auto01.hyundai.com",
        },
    },
]


def build_nodes(agents: Iterable[dict[str, Any]]) -> list[AgentNode]:
    """Validate raw agent definitions into idle nodes.

    The node role is taken from the record identity when not given.

    Raises:
        ValueError: If a definition is invalid or a node id repeats

    """
    nodes: list[AgentNode] = []
    seen: set[str] = set()

    for index, raw in enumerate(agents):
        if not isinstance(raw, dict):
            raise ValueError(f"Agent definition #{index} must be a mapping")
        data = dict(raw)
        identity = (data.get("record") or {}).get("identity") or {}
        data.setdefault("role", identity.get("role"))
        data["status"] = "idle"

        try:
            node = AgentNode.model_validate(data)
        except ValidationError as e:
            raise ValueError(f"Invalid agent definition #{index}: {e}") from e

        if node.role != node.record.role:
            raise ValueError(
                f"Node '{node.id}' role {node.role} disagrees with its record "
                f"role {node.record.role}"
            )
        if node.id in seen:
            raise ValueError(f"Duplicate node id '{node.id}'")
        seen.add(node.id)
        nodes.append(node)

    return nodes


def default_nodes() -> list[AgentNode]:
    """Fresh copy of the reference network."""
    return build_nodes(DEFAULT_AGENTS)


def load_network(path: str | Path | None = None) -> list[AgentNode]:
    """Load agent nodes from a YAML network file.

    A missing file falls back to the reference network.

    Raises:
        ValueError: If the document is malformed

    """
    if path is None:
        return default_nodes()

    try:
        with Path(path).open(encoding="utf-8") as f:
            document = yaml.safe_load(f)
        logger.info(f"Network loaded from {path}")
    except FileNotFoundError:
        logger.warning(f"Network file not found at {path}, using defaults")
        return default_nodes()
    except yaml.YAMLError as e:
        raise ValueError(f"Network file {path} is not valid YAML: {e}") from e

    if not isinstance(document, dict) or not isinstance(document.get("agents"), list):
        raise ValueError(f"Network file {path} must contain an 'agents' list")

    return build_nodes(document["agents"])


def build_directory(nodes: Iterable[AgentNode]) -> AgentDirectory:
    """Register every node's record in a fresh directory."""
    directory = AgentDirectory()
    for node in nodes:
        if not directory.register(node.record):
            logger.warning(
                f"Node '{node.id}' shares DID {node.record.did} with an earlier node"
            )
    return directory
