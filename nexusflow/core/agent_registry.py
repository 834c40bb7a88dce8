"""Agent directory for capability-based discovery.

This module is the naming and lookup layer of the trade network: agents are
registered by decentralized identifier (DID) and found again by role,
capability and jurisdiction.
"""

import logging
from threading import Lock

from ..schemas.unified_models import AgentRecord, DirectoryQuery


logger = logging.getLogger(__name__)


class AgentDirectory:
    """In-memory directory of agent records keyed by DID.

    Provides functionality for:
    - Registration with duplicate-DID rejection
    - Predicate lookup (role AND capability AND jurisdiction)
    - Explicit reset between runs

    Records are immutable once registered. There is no update and no
    delete-by-DID; ``clear()`` is the only way to remove a record.
    """

    def __init__(self):
        """Initialize empty directory."""
        # dict keeps insertion order, which is the lookup result order
        self._records: dict[str, AgentRecord] = {}
        self._lock = Lock()

    def register(self, record: AgentRecord) -> bool:
        """Register an agent record.

        Args:
            record: Agent record to insert

        Returns:
            True if inserted, False if a record with the same DID exists

        """
        with self._lock:
            if record.did in self._records:
                logger.warning(f"Rejected duplicate registration for '{record.did}'")
                return False
            self._records[record.did] = record

        logger.info(
            f"Registered agent '{record.did}' ({record.role}) with capabilities: "
            f"{list(record.capabilities)}"
        )
        return True

    def find(self, query: DirectoryQuery | None = None) -> list[AgentRecord]:
        """Find every record satisfying all supplied filters.

        Args:
            query: Filters to AND together; None matches every record

        Returns:
            Matching records in registration order

        """
        query = query or DirectoryQuery()
        with self._lock:
            records = list(self._records.values())

        matches = [record for record in records if query.matches(record)]
        logger.debug(
            f"Directory query {query.model_dump(exclude_none=True)} "
            f"matched {len(matches)} record(s)"
        )
        return matches

    def get(self, did: str) -> AgentRecord | None:
        """Get record by DID, or None if not registered."""
        with self._lock:
            return self._records.get(did)

    def list_records(self) -> list[AgentRecord]:
        """Get all registered records in registration order."""
        with self._lock:
            return list(self._records.values())

    def list_capabilities(self) -> list[str]:
        """Get the sorted set of capabilities across all records."""
        with self._lock:
            records = list(self._records.values())
        return sorted({cap for record in records for cap in record.capabilities})

    def count(self) -> int:
        """Number of registered records."""
        with self._lock:
            return len(self._records)

    def clear(self) -> None:
        """Discard every record."""
        with self._lock:
            removed = len(self._records)
            self._records.clear()
        logger.info(f"Directory cleared ({removed} record(s) removed)")

    def __len__(self) -> int:
        return self.count()

    def __contains__(self, did: object) -> bool:
        with self._lock:
            return did in self._records
