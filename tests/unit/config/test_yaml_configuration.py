"""Tests for YAML network definitions and the reference network.

Covers loading agent networks from YAML files, fallback to the built-in
network, and validation of malformed definitions.
"""

import pytest
import yaml

from nexusflow.core.network import (
    DEFAULT_AGENTS,
    LOCATIONS,
    build_directory,
    build_nodes,
    default_nodes,
    load_network,
)
from nexusflow.schemas.unified_models import AgentRole, NodeStatus


@pytest.fixture
def network_yaml(tmp_path):
    """Write a two-agent network file."""
    document = {
        "agents": [
            {
                "id": "buyer-01",
                "label": "Acme Buying",
                "record": {
                    "identity": {"did": "did:test:acme", "role": "buyer"},
                    "capabilities": ["procurement"],
                    "context": {"jurisdiction": "US", "currency": "USD"},
                    "endpoint": "mcp://acme.example",
                },
            },
            {
                "id": "fab-1",
                "label": "Fab One",
                "x": 120,
                "y": 40,
                "record": {
                    "identity": {"did": "did:test:fab1", "role": "supplier"},
                    "capabilities": ["chips", "chips", "wafers"],
                    "context": {
                        "jurisdiction": "TW",
                        "location": {
                            "code": "TW KHH",
                            "name": "Kaohsiung Port",
                            "lat": 22.62,
                            "lon": 120.27,
                        },
                    },
                    "endpoint": "mcp://fab1.example",
                },
            },
        ]
    }
    path = tmp_path / "network.yaml"
    path.write_text(yaml.safe_dump(document), encoding="utf-8")
    return path


class TestReferenceNetwork:
    """Test the built-in reference network."""

    def test_reference_population(self):
        """Test one buyer, three suppliers and two carriers."""
        nodes = default_nodes()
        roles = [node.role for node in nodes]

        assert len(nodes) == 6
        assert roles.count(AgentRole.BUYER) == 1
        assert roles.count(AgentRole.SUPPLIER) == 3
        assert roles.count(AgentRole.LOGISTICS) == 2
        assert all(node.status is NodeStatus.IDLE for node in nodes)

    def test_reference_order(self):
        assert [node.id for node in default_nodes()] == [
            "buyer-01",
            "supplier-a",
            "supplier-b",
            "logistics-a",
            "logistics-b",
            "supplier-c",
        ]

    def test_default_nodes_are_fresh(self):
        first = default_nodes()
        first[0].status = NodeStatus.ERROR

        assert default_nodes()[0].status is NodeStatus.IDLE

    def test_reference_locations(self):
        nodes = {node.id: node for node in default_nodes()}

        assert nodes["supplier-c"].record.context.location == LOCATIONS["BUSAN"]
        assert nodes["logistics-a"].record.context.location is None
        assert nodes["logistics-a"].record.context.fleet == "Triple-E Class"

    def test_reference_directory(self):
        directory = build_directory(default_nodes())

        assert directory.count() == len(DEFAULT_AGENTS)


class TestLoadNetwork:
    """Test YAML network loading."""

    def test_no_path_uses_reference(self):
        assert [n.id for n in load_network()] == [n.id for n in default_nodes()]

    def test_load_from_yaml(self, network_yaml):
        """Test nodes are built from the file, roles taken from the records."""
        nodes = load_network(network_yaml)

        assert [node.id for node in nodes] == ["buyer-01", "fab-1"]
        fab = nodes[1]
        assert fab.role is AgentRole.SUPPLIER
        assert fab.record.capabilities == ("chips", "wafers")
        assert fab.record.context.location.code == "TW KHH"
        assert (fab.x, fab.y) == (120, 40)

    def test_missing_file_falls_back(self, tmp_path, caplog):
        """Test a missing file warns and uses the reference network."""
        nodes = load_network(tmp_path / "absent.yaml")

        assert len(nodes) == 6
        assert "using defaults" in caplog.text

    def test_invalid_yaml_rejected(self, tmp_path):
        path = tmp_path / "broken.yaml"
        path.write_text("agents: [unclosed", encoding="utf-8")

        with pytest.raises(ValueError, match="not valid YAML"):
            load_network(path)

    def test_missing_agents_list_rejected(self, tmp_path):
        path = tmp_path / "empty.yaml"
        path.write_text("nodes: []\n", encoding="utf-8")

        with pytest.raises(ValueError, match="'agents' list"):
            load_network(path)


class TestBuildNodes:
    """Test validation of raw agent definitions."""

    @staticmethod
    def definition(node_id="n1", role="supplier", **overrides):
        data = {
            "id": node_id,
            "label": node_id,
            "record": {
                "identity": {"did": f"did:test:{node_id}", "role": role},
                "capabilities": [],
                "context": {"jurisdiction": "KR"},
                "endpoint": "mcp://n.example",
            },
        }
        data.update(overrides)
        return data

    def test_role_defaults_to_record_role(self):
        assert build_nodes([self.definition(role="logistics")])[0].role is (
            AgentRole.LOGISTICS
        )

    def test_explicit_role_must_match_record(self):
        data = self.definition(role="supplier")
        data["role"] = "logistics"

        with pytest.raises(ValueError, match="disagrees"):
            build_nodes([data])

    def test_duplicate_id_rejected(self):
        with pytest.raises(ValueError, match="Duplicate node id"):
            build_nodes([self.definition("n1"), self.definition("n1")])

    def test_non_mapping_rejected(self):
        with pytest.raises(ValueError, match="must be a mapping"):
            build_nodes(["not an agent"])

    def test_invalid_definition_rejected(self):
        data = self.definition()
        del data["record"]["endpoint"]

        with pytest.raises(ValueError, match="Invalid agent definition #0"):
            build_nodes([data])

    def test_status_always_starts_idle(self):
        data = self.definition()
        data["status"] = "success"

        assert build_nodes([data])[0].status is NodeStatus.IDLE
