"""
Bookable catalog: hotels, routes, vehicle types, services, and the
time-series data loaded by the ingest pipeline.

Names are unique so the ingest consumer can upsert by name.
"""

from sqlalchemy import Column, Integer, String, Float, Date, Text, ForeignKey, CheckConstraint, Index
from sqlalchemy.orm import relationship

from greenlake.db.base import Base, TimestampMixin


class Hotel(Base, TimestampMixin):
    __tablename__ = "hotels"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), unique=True, nullable=False)

    occupancy_data = relationship("HotelOccupancy", back_populates="hotel")
    sustainability_data = relationship("HotelSustainability", back_populates="hotel")
    reviews = relationship("Review", back_populates="hotel")

    def __repr__(self) -> str:
        return f"<Hotel(id={self.id}, name={self.name})>"


class HotelOccupancy(Base):
    __tablename__ = "hotel_occupancy"

    id = Column(Integer, primary_key=True, index=True)
    hotel_id = Column(Integer, ForeignKey("hotels.id"), nullable=False)
    date = Column(Date, nullable=False)
    occupancy_rate = Column(Float, nullable=False)
    confirmed_bookings = Column(Integer, nullable=False, default=0)
    cancellations = Column(Integer, nullable=False, default=0)
    average_price_per_night = Column(Float, nullable=False, default=0)

    hotel = relationship("Hotel", back_populates="occupancy_data")

    __table_args__ = (
        # Availability checks scan one hotel over a date range
        Index("ix_hotel_occupancy_hotel_date", "hotel_id", "date"),
    )


class HotelSustainability(Base):
    __tablename__ = "hotel_sustainability"

    id = Column(Integer, primary_key=True, index=True)
    hotel_id = Column(Integer, ForeignKey("hotels.id"), nullable=False)
    date = Column(Date, nullable=False)
    energy_consumption_kwh = Column(Float, nullable=False)
    waste_generated_kg = Column(Float, nullable=False)
    recycling_percentage = Column(Float, nullable=False)
    water_usage_m3 = Column(Float, nullable=False)

    hotel = relationship("Hotel", back_populates="sustainability_data")

    __table_args__ = (
        Index("ix_hotel_sustainability_hotel_date", "hotel_id", "date"),
    )


class Route(Base, TimestampMixin):
    __tablename__ = "routes"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), unique=True, nullable=False)
    route_type = Column(String(100), nullable=True)
    length_km = Column(Float, nullable=True)
    duration_hr = Column(Float, nullable=True)
    popularity = Column(Integer, nullable=True)

    reviews = relationship("Review", back_populates="route")
    transport_usages = relationship("TransportUsage", back_populates="popular_route")


class VehicleType(Base, TimestampMixin):
    __tablename__ = "vehicle_types"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), unique=True, nullable=False)

    transport_usages = relationship("TransportUsage", back_populates="vehicle_type")


class TransportUsage(Base):
    __tablename__ = "transport_usage"

    id = Column(Integer, primary_key=True, index=True)
    date = Column(Date, nullable=False)
    vehicle_type_id = Column(Integer, ForeignKey("vehicle_types.id"), nullable=False, index=True)
    user_count = Column(Integer, nullable=False)
    average_travel_time_min = Column(Float, nullable=False)
    popular_route_id = Column(Integer, ForeignKey("routes.id"), nullable=True, index=True)

    vehicle_type = relationship("VehicleType", back_populates="transport_usages")
    popular_route = relationship("Route", back_populates="transport_usages")


class Service(Base, TimestampMixin):
    __tablename__ = "services"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), unique=True, nullable=False)
    service_type = Column(String(100), nullable=True)

    reviews = relationship("Review", back_populates="service")


class Review(Base):
    __tablename__ = "reviews"

    id = Column(Integer, primary_key=True, index=True)
    date = Column(Date, nullable=False)
    rating = Column(Integer, nullable=False)
    comment = Column(Text, nullable=True)
    language = Column(String(10), nullable=False, default="es")
    hotel_id = Column(Integer, ForeignKey("hotels.id"), nullable=True, index=True)
    route_id = Column(Integer, ForeignKey("routes.id"), nullable=True, index=True)
    service_id = Column(Integer, ForeignKey("services.id"), nullable=True, index=True)

    hotel = relationship("Hotel", back_populates="reviews")
    route = relationship("Route", back_populates="reviews")
    service = relationship("Service", back_populates="reviews")

    __table_args__ = (
        CheckConstraint(
            "(CASE WHEN hotel_id IS NULL THEN 0 ELSE 1 END)"
            " + (CASE WHEN route_id IS NULL THEN 0 ELSE 1 END)"
            " + (CASE WHEN service_id IS NULL THEN 0 ELSE 1 END) = 1",
            name="check_review_single_target",
        ),
    )
