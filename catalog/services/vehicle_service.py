import logging

from catalog.config import Settings
from catalog.schemas.vehicle import VehicleCreateRequest
from catalog.services.image_service import ImageStorage
from catalog.stores.base import VehicleStore
from catalog.utils.exceptions import (
    NotFoundException,
    StoreUnavailableException,
    ValidationException,
)

logger = logging.getLogger(__name__)


class VehicleService:

    def __init__(self, store: VehicleStore, images: ImageStorage, settings: Settings):
        self.store = store
        self.images = images
        self.max_images = settings.MAX_IMAGES_PER_VEHICLE
        self.degrade_list = settings.LIST_DEGRADE_ON_STORE_ERROR

    def list_vehicles(self) -> list[dict]:
        try:
            return self.store.list_all()
        except StoreUnavailableException:
            if not self.degrade_list:
                raise
            logger.warning("Vehicle store unavailable, returning an empty list")
            return []

    def create_vehicle(self, data: VehicleCreateRequest) -> dict:
        sources = data.image_sources()
        if len(sources) > self.max_images:
            raise ValidationException(
                f"A vehicle can have at most {self.max_images} images",
                details=[{"field": "images", "message": f"Got {len(sources)} images"}],
                field="images",
            )

        written: list[str] = []
        try:
            images = []
            for index, source in enumerate(sources):
                reference = self.images.resolve(source, index)
                if reference != source:
                    written.append(reference)
                images.append(reference)

            record = self.store.insert({
                "make":        data.make,
                "model":       data.model,
                "year":        data.year,
                "price":       data.price,
                "mileage":     data.mileage,
                "description": data.description,
                "featured":    data.featured,
                "images":      images,
            })
        except Exception:
            if written:
                logger.warning(f"Create failed, removing {len(written)} stored image payload(s)")
            for reference in written:
                self.images.release(reference)
            raise

        logger.info(f"Created vehicle {record['id']} ({record['make']} {record['model']})")
        return record

    def delete_vehicle(self, vehicle_id: int) -> None:
        removed = self.store.delete(vehicle_id)
        if removed is None:
            raise NotFoundException("Vehicle")

        local = [ref for ref in removed.get("images", []) if self.images.is_local(ref)]
        if local:
            self._release_unshared(vehicle_id, local)

        logger.info(f"Deleted vehicle {vehicle_id}")

    def _release_unshared(self, vehicle_id: int, references: list[str]) -> None:
        """Remove payload files no surviving vehicle points at. The record is already gone."""
        try:
            still_used = {ref for v in self.store.list_all() for ref in v.get("images", [])}
        except StoreUnavailableException:
            logger.error(f"Vehicle {vehicle_id} deleted but its images were kept: store unreadable")
            return

        for reference in references:
            if reference in still_used:
                continue
            try:
                self.images.release(reference)
            except OSError as e:
                logger.error(f"Could not remove image {reference} of vehicle {vehicle_id}: {e}")
