from pydantic import BaseModel, Field, field_validator
from typing import Optional, Union


# ─── Image input ──────────────────────────────────────────────────────────────
class ImageInput(BaseModel):
    """Richer image shape sent by the admin preview. Crop offsets are display-only."""
    src:         str
    cropOffsetX: Optional[float] = None
    cropOffsetY: Optional[float] = None


# ─── Requests ─────────────────────────────────────────────────────────────────
class VehicleCreateRequest(BaseModel):
    make:        str   = Field(max_length=100)
    model:       str   = Field(max_length=100)
    year:        int   = Field(ge=-2**31, le=2**31 - 1)   # fits an INTEGER column on every backend
    price:       float = Field(ge=0, allow_inf_nan=False)
    mileage:     float = Field(ge=0, allow_inf_nan=False)
    description: str
    featured:    bool = False
    images:      list[Union[str, ImageInput]] = []

    @field_validator("make", "model", "description")
    @classmethod
    def check_not_blank(cls, v, info):
        if not v.strip(): raise ValueError(f"{info.field_name} cannot be empty")
        return v.strip()

    def image_sources(self) -> list[str]:
        return [img if isinstance(img, str) else img.src for img in self.images]


# ─── Responses ────────────────────────────────────────────────────────────────
class VehicleOut(BaseModel):
    id:          int
    make:        str
    model:       str
    year:        int
    price:       float
    mileage:     float
    description: str
    featured:    bool
    images:      list[str]
    createdAt:   Optional[str] = None
