from fastapi import Request

from catalog.services.vehicle_service import VehicleService


# ─── App-scoped service ───────────────────────────────────────────────────────
def get_vehicle_service(request: Request) -> VehicleService:
    """Return the service create_app() built and parked on app.state."""
    return request.app.state.vehicle_service
