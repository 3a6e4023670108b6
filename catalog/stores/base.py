"""Persistence contract shared by every vehicle store backend."""

from typing import Protocol, runtime_checkable


@runtime_checkable
class VehicleStore(Protocol):
    """Storage backend for vehicle records.

    Records are plain dicts with the keys of ``VehicleOut``. Implementations
    own id assignment: ``insert`` must allocate the id and persist the record
    as one atomic step so concurrent creates never share an id.
    """

    def check(self) -> bool:
        """Return True when the backend is reachable."""
        ...

    def list_all(self) -> list[dict]:
        """Return every record sorted by ascending id.

        Raises:
            StoreUnavailableException: If the backend cannot be read.
        """
        ...

    def next_id(self) -> int:
        """Return the id the next insert would receive (informational only)."""
        ...

    def insert(self, data: dict) -> dict:
        """Assign an id to ``data``, persist it and return the stored record.

        Raises:
            StoreUnavailableException: If the write fails.
        """
        ...

    def delete(self, vehicle_id: int) -> dict | None:
        """Remove a record and return it, or None when no record has that id."""
        ...

    def count(self) -> int:
        ...
