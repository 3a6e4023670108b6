from sqlalchemy import Column, Integer, String, Text, Float, Boolean, JSON, TIMESTAMP
from sqlalchemy.sql import func
from datetime import datetime, timezone
from catalog.database import Base


class Vehicle(Base):
    __tablename__ = "vehicles"

    # Assigned by the store on insert, never autoincremented by the database
    id          = Column(Integer, primary_key=True, autoincrement=False)
    make        = Column(String(100), nullable=False)
    model       = Column(String(100), nullable=False)
    year        = Column(Integer, nullable=False)
    price       = Column(Float, nullable=False)
    mileage     = Column(Float, nullable=False)
    description = Column(Text, nullable=False, default="")
    featured    = Column(Boolean, nullable=False, default=False)
    images      = Column(JSON, nullable=False, default=list)
    createdAt   = Column("createdAt", TIMESTAMP(timezone=True),
                         default=lambda: datetime.now(timezone.utc), server_default=func.now())
    updatedAt   = Column("updatedAt", TIMESTAMP(timezone=True), server_default=func.now(), onupdate=func.now())

    def __repr__(self):
        return f"<Vehicle id={self.id} {self.make} {self.model}>"
