import logging
import threading
from datetime import datetime, timezone

from sqlalchemy import delete, func
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from catalog.database import Base, check_db_connection
from catalog.models.vehicle import Vehicle
from catalog.services.id_allocator import next_vehicle_id
from catalog.utils.exceptions import StoreUnavailableException

logger = logging.getLogger(__name__)


def _as_utc(value: datetime | None) -> str | None:
    if value is None:
        return None
    # SQLite hands timestamps back without an offset; they are stored as UTC
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.isoformat()


def _serialize(v: Vehicle) -> dict:
    return {
        "id":          v.id,
        "make":        v.make,
        "model":       v.model,
        "year":        v.year,
        "price":       v.price,
        "mileage":     v.mileage,
        "description": v.description,
        "featured":    v.featured,
        "images":      list(v.images or []),
        "createdAt":   _as_utc(v.createdAt),
    }


class SqlVehicleStore:
    """Vehicle store backed by a SQLAlchemy engine."""

    def __init__(self, engine: Engine, session_factory: sessionmaker, max_retries: int = 5):
        self.engine = engine
        self._session_factory = session_factory
        self._max_retries = max_retries
        # Serializes allocation within this process; the primary key guards across processes
        self._lock = threading.Lock()

    def create_schema(self) -> None:
        Base.metadata.create_all(bind=self.engine)

    def check(self) -> bool:
        return check_db_connection(self.engine)

    def list_all(self) -> list[dict]:
        db = self._session_factory()
        try:
            items = db.query(Vehicle).order_by(Vehicle.id).all()
            return [_serialize(v) for v in items]
        except SQLAlchemyError as e:
            logger.error(f"Failed to list vehicles: {e}")
            raise StoreUnavailableException() from e
        finally:
            db.close()

    def count(self) -> int:
        db = self._session_factory()
        try:
            return db.query(func.count(Vehicle.id)).scalar() or 0
        except SQLAlchemyError as e:
            logger.error(f"Failed to count vehicles: {e}")
            raise StoreUnavailableException() from e
        finally:
            db.close()

    def next_id(self) -> int:
        db = self._session_factory()
        try:
            return next_vehicle_id(db.query(func.max(Vehicle.id)).scalar())
        except SQLAlchemyError as e:
            logger.error(f"Failed to read max vehicle id: {e}")
            raise StoreUnavailableException() from e
        finally:
            db.close()

    def insert(self, data: dict) -> dict:
        for attempt in range(1, self._max_retries + 1):
            with self._lock:
                db = self._session_factory()
                try:
                    vehicle_id = next_vehicle_id(db.query(func.max(Vehicle.id)).scalar())
                    vehicle = Vehicle(id=vehicle_id, **data)
                    db.add(vehicle)
                    db.commit()
                    db.refresh(vehicle)
                    return _serialize(vehicle)
                except IntegrityError:
                    db.rollback()
                    logger.warning(f"Vehicle id conflict on attempt {attempt}, retrying")
                except SQLAlchemyError as e:
                    db.rollback()
                    logger.error(f"Failed to insert vehicle: {e}")
                    raise StoreUnavailableException() from e
                finally:
                    db.close()
        raise StoreUnavailableException(
            f"Could not allocate a vehicle id after {self._max_retries} attempts"
        )

    def delete(self, vehicle_id: int) -> dict | None:
        db = self._session_factory()
        try:
            v = db.query(Vehicle).filter(Vehicle.id == vehicle_id).first()
            if not v:
                return None
            record = _serialize(v)
            result = db.execute(delete(Vehicle).where(Vehicle.id == vehicle_id))
            db.commit()
            # A concurrent delete may have removed the row first
            return record if result.rowcount else None
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"Failed to delete vehicle {vehicle_id}: {e}")
            raise StoreUnavailableException() from e
        finally:
            db.close()
