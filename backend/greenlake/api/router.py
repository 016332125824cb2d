"""
Central API router that aggregates all route modules.
"""

from fastapi import APIRouter
from greenlake.api.routes import auth, users, cart, orders, rewards, hotels, vehicles, tour_routes, services

api_router = APIRouter(prefix="/api/v1")
api_router.include_router(auth.router)
api_router.include_router(users.router)
api_router.include_router(cart.router)
api_router.include_router(orders.router)
api_router.include_router(rewards.router)
api_router.include_router(hotels.router)
api_router.include_router(vehicles.router)
api_router.include_router(tour_routes.router)
api_router.include_router(services.router)
