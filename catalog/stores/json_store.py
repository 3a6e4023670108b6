import json
import logging
import os
import threading
from datetime import datetime, timezone
from pathlib import Path

from catalog.services.id_allocator import next_vehicle_id
from catalog.utils.exceptions import StoreUnavailableException

logger = logging.getLogger(__name__)


class JsonVehicleStore:
    """
    Vehicle store kept as a single JSON array on disk.

    Every mutation is a read-modify-write under one lock, and the new file is
    swapped in with os.replace so readers never see a partial write. The lock
    is per process: run a single worker when using this backend.
    """

    def __init__(self, path: str | Path):
        self.path = Path(path)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self._lock = threading.Lock()

    def _read(self) -> list[dict]:
        if not self.path.exists():
            return []
        try:
            records = json.loads(self.path.read_text(encoding="utf-8") or "[]")
        except (OSError, ValueError) as e:
            logger.error(f"Failed to read vehicle file {self.path}: {e}")
            raise StoreUnavailableException() from e
        if not isinstance(records, list):
            logger.error(f"Vehicle file {self.path} does not hold a JSON array")
            raise StoreUnavailableException()
        return records

    def _write(self, records: list[dict]) -> None:
        tmp_path = self.path.with_name(self.path.name + ".tmp")
        try:
            tmp_path.write_text(json.dumps(records, ensure_ascii=False, indent=2), encoding="utf-8")
            os.replace(tmp_path, self.path)
        except OSError as e:
            logger.error(f"Failed to write vehicle file {self.path}: {e}")
            raise StoreUnavailableException() from e

    def check(self) -> bool:
        try:
            self._read()
            return True
        except StoreUnavailableException:
            return False

    def list_all(self) -> list[dict]:
        return sorted(self._read(), key=lambda r: r["id"])

    def count(self) -> int:
        return len(self._read())

    def next_id(self) -> int:
        records = self._read()
        return next_vehicle_id(max((r["id"] for r in records), default=None))

    def insert(self, data: dict) -> dict:
        with self._lock:
            records = self._read()
            vehicle_id = next_vehicle_id(max((r["id"] for r in records), default=None))
            record = {
                "id": vehicle_id,
                **data,
                "createdAt": datetime.now(timezone.utc).isoformat(),
            }
            records.append(record)
            self._write(records)
            return record

    def delete(self, vehicle_id: int) -> dict | None:
        with self._lock:
            records = self._read()
            removed = next((r for r in records if r["id"] == vehicle_id), None)
            if removed is None:
                return None
            self._write([r for r in records if r["id"] != vehicle_id])
            return removed
