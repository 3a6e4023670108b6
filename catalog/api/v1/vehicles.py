from fastapi import APIRouter, Depends, Path, status

from catalog.dependencies import get_vehicle_service
from catalog.schemas.common import AckResponse, ERROR_RESPONSES, success_response
from catalog.schemas.vehicle import VehicleCreateRequest, VehicleOut
from catalog.services.vehicle_service import VehicleService

router = APIRouter(prefix="/vehicles")


@router.get("", response_model=list[VehicleOut], responses=ERROR_RESPONSES,
            summary="List vehicles ordered by id")
def list_vehicles(service: VehicleService = Depends(get_vehicle_service)):
    return service.list_vehicles()


@router.post("", status_code=status.HTTP_201_CREATED, response_model=VehicleOut,
             responses=ERROR_RESPONSES, summary="Create vehicle")
def create_vehicle(
    body:    VehicleCreateRequest,
    service: VehicleService = Depends(get_vehicle_service),
):
    return service.create_vehicle(body)


@router.delete("/{vehicle_id}", response_model=AckResponse, responses=ERROR_RESPONSES,
               summary="Delete vehicle and its stored images")
def delete_vehicle(
    vehicle_id: int            = Path(..., ge=1),
    service:    VehicleService = Depends(get_vehicle_service),
):
    service.delete_vehicle(vehicle_id)
    return success_response()
