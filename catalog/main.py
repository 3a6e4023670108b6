import logging
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.exceptions import RequestValidationError
from fastapi.staticfiles import StaticFiles

from catalog.config import Settings, settings as default_settings
from catalog.services.image_service import ImageStorage
from catalog.services.vehicle_service import VehicleService
from catalog.stores.factory import build_store
from catalog.utils.exceptions import AppException
from catalog.middleware.error_handler import (
    app_exception_handler,
    validation_exception_handler,
    generic_exception_handler,
)

from catalog.api.v1 import vehicles

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

VERSION = "1.0.0"


def create_app(settings: Settings | None = None) -> FastAPI:
    settings = settings or default_settings

    app = FastAPI(
        title=settings.APP_NAME,
        version=VERSION,
        description="Vehicle listing catalog API",
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
    )

    # ─── Components ───────────────────────────────────────────────────────────
    store = build_store(settings)
    images = ImageStorage(
        settings.UPLOAD_DIR,
        url_prefix=settings.UPLOAD_URL_PREFIX,
        persist_inline=settings.PERSIST_INLINE_IMAGES,
    )
    app.state.store = store
    app.state.vehicle_service = VehicleService(store, images, settings)

    # ─── CORS ─────────────────────────────────────────────────────────────────
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.get_cors_origins(),
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # ─── Exception Handlers ───────────────────────────────────────────────────
    app.add_exception_handler(AppException, app_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, generic_exception_handler)

    # ─── Routers ──────────────────────────────────────────────────────────────
    PREFIX = "/api"
    app.include_router(vehicles.router, prefix=PREFIX, tags=["Vehicles"])

    # ─── Stored image payloads ────────────────────────────────────────────────
    app.mount(images.url_prefix, StaticFiles(directory=images.upload_dir), name="uploads")

    # ─── Startup ──────────────────────────────────────────────────────────────
    @app.on_event("startup")
    def on_startup():
        ok = store.check()
        logger.info("Vehicle store reachable" if ok else "Vehicle store check FAILED")

    # ─── Health ───────────────────────────────────────────────────────────────
    @app.get("/health", tags=["Health"])
    def health():
        return {
            "status": "ok",
            "app": settings.APP_NAME,
            "version": VERSION,
            "store": "ok" if store.check() else "unavailable",
        }

    return app


def main() -> None:
    import uvicorn
    uvicorn.run("catalog.main:create_app", factory=True,
                host=default_settings.APP_HOST, port=default_settings.APP_PORT,
                reload=default_settings.is_development)


if __name__ == "__main__":
    main()
