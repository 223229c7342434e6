from fastapi import APIRouter

from pos_api.api.v1.routers import menu as menu_router
from pos_api.api.v1.routers import cart as cart_router
from pos_api.api.v1.routers import orders as orders_router
from pos_api.api.v1.routers import kitchen as kitchen_router
from pos_api.api.v1.routers import payments as payments_router
from pos_api.api.v1.routers import devices as devices_router
from pos_api.api.v1.routers import notifications as notifications_router
from pos_api.api.v1.routers import realtime as realtime_router

router = APIRouter()

# POS routes
router.include_router(devices_router.router)
router.include_router(menu_router.router)
router.include_router(cart_router.router)
router.include_router(orders_router.router)
router.include_router(payments_router.router)

# kitchen routes
router.include_router(kitchen_router.router)
router.include_router(notifications_router.router)
router.include_router(realtime_router.router)
