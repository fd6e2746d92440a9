import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware

from dealership.core.db import create_tables
from dealership.core.environment import get_cors_origins
from dealership.core.logging import setup_logging
from dealership.exceptions import register_exception_handlers
from dealership.middleware.rate_limit import custom_rate_limit_exceeded, limiter
from dealership.routers import (
    admin_auth,
    bike_images,
    bikes,
    branches,
    csv_stock,
    customer_profile,
    customer_vehicles,
    customers,
    enquiries,
    finance_applications,
    health,
    service_bookings,
    service_packages,
    stock,
    value_added_services,
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging()
    await create_tables()
    logger.info("Dealership API started")
    yield
    logger.info("Dealership API stopped")


app = FastAPI(title="Dealership Back Office API", lifespan=lifespan)

register_exception_handlers(app)

app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, custom_rate_limit_exceeded)
app.add_middleware(SlowAPIMiddleware)

app.add_middleware(
    CORSMiddleware,
    allow_origins=get_cors_origins(),
    allow_credentials="*" not in get_cors_origins(),
    allow_methods=["*"],
    allow_headers=["*"],
)

for module in (
    health,
    admin_auth,
    branches,
    bikes,
    bike_images,
    stock,
    csv_stock,
    customers,
    customer_profile,
    customer_vehicles,
    value_added_services,
    service_packages,
    service_bookings,
    finance_applications,
    enquiries,
):
    app.include_router(module.router)
