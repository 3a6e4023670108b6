import logging

from catalog.config import Settings
from catalog.database import create_db_engine, create_session_factory
from catalog.stores.base import VehicleStore
from catalog.stores.json_store import JsonVehicleStore
from catalog.stores.sql_store import SqlVehicleStore

logger = logging.getLogger(__name__)


def build_store(settings: Settings) -> VehicleStore:
    """Instantiate the store selected by STORE_BACKEND."""
    backend = settings.STORE_BACKEND.lower()

    if backend == "database":
        engine = create_db_engine(settings)
        store = SqlVehicleStore(
            engine,
            create_session_factory(engine),
            max_retries=settings.ID_ALLOCATION_RETRIES,
        )
        if settings.DATABASE_AUTO_CREATE:
            store.create_schema()
        logger.info(f"Using database vehicle store ({engine.url.render_as_string(hide_password=True)})")
        return store

    if backend == "json":
        logger.info(f"Using JSON vehicle store at {settings.JSON_STORE_PATH}")
        return JsonVehicleStore(settings.JSON_STORE_PATH)

    raise ValueError(f"Unknown STORE_BACKEND '{settings.STORE_BACKEND}' (expected 'database' or 'json')")
