"""
Import all models here so that Alembic can auto-detect them when
generating migrations.
"""

from catalog.models.vehicle import Vehicle

__all__ = [
    "Vehicle",
]
