from greenlake.schemas.user import (
    UserCreate, UserResponse, UserLogin, UserProfile, UserUpdate, WalletResponse, Token,
    TransferRequest, TransferResponse,
)
from greenlake.schemas.cart import CartItemCreate, CartItemResponse, CartClearResponse
from greenlake.schemas.order import OrderCreate, OrderResponse
from greenlake.schemas.reward import (
    RedeemDiscountRequest, PurchaseAmenityRequest, RedemptionResponse,
    DiscountResponse, AmenityResponse, DiscountRedemptionResponse, AmenityPurchaseResponse,
    UserRedemptionsResponse,
)
from greenlake.schemas.catalog import HotelResponse, VehicleResponse, RouteResponse, ServiceResponse

__all__ = [
    "UserCreate", "UserResponse", "UserLogin", "UserProfile", "UserUpdate", "WalletResponse", "Token",
    "TransferRequest", "TransferResponse",
    "CartItemCreate", "CartItemResponse", "CartClearResponse",
    "OrderCreate", "OrderResponse",
    "RedeemDiscountRequest", "PurchaseAmenityRequest", "RedemptionResponse",
    "DiscountResponse", "AmenityResponse", "DiscountRedemptionResponse", "AmenityPurchaseResponse",
    "UserRedemptionsResponse",
    "HotelResponse", "VehicleResponse", "RouteResponse", "ServiceResponse",
]
