from greenlake.models.user import User
from greenlake.models.cart import Cart, CartItem
from greenlake.models.order import Order
from greenlake.models.reward import Discount, Amenity, DiscountRedemption, AmenityPurchase
from greenlake.models.catalog import (
    Hotel, HotelOccupancy, HotelSustainability, Route, VehicleType, TransportUsage, Service, Review,
)

__all__ = [
    "User", "Cart", "CartItem", "Order",
    "Discount", "Amenity", "DiscountRedemption", "AmenityPurchase",
    "Hotel", "HotelOccupancy", "HotelSustainability", "Route",
    "VehicleType", "TransportUsage", "Service", "Review",
]
