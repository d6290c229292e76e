import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException
from contextlib import asynccontextmanager

from buytown.database import create_db_and_tables
from buytown.config import settings
from buytown.exceptions import BuytownError
from buytown.routes import (
    admin_orders,
    cart,
    checkout,
    delivery,
    health,
    payments,
    user_orders,
    vehicles,
)

logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Run DB creation ONLY in local
    if settings.env == "local":
        create_db_and_tables()
    yield

app = FastAPI(title="BuyTown Orders API", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        "http://localhost:5173",
        "http://localhost:3000",
        "http://127.0.0.1:5173",
        "http://127.0.0.1:8000",
    ],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(BuytownError)
async def buytown_error_handler(request: Request, exc: BuytownError):
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path}: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(HTTPException)
async def http_error_handler(request: Request, exc: HTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content={"statusCode": exc.status_code, "error": exc.detail},
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    errors = [
        {"field": ".".join(str(p) for p in e["loc"][1:]), "message": e["msg"]}
        for e in exc.errors()
    ]
    return JSONResponse(
        status_code=400,
        content={"statusCode": 400, "error": "Invalid request", "kind": "validation_error", "details": errors},
    )


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception(f"Unhandled error on {request.method} {request.url.path}")
    return JSONResponse(status_code=500, content={"statusCode": 500, "error": "Internal server error"})


app.include_router(health.router, prefix="/health", tags=["Health"])
app.include_router(cart.router, prefix="/cart", tags=["Cart"])
app.include_router(checkout.router, prefix="/checkout", tags=["Checkout"])
app.include_router(user_orders.router, prefix="/orders", tags=["User Orders"])
app.include_router(admin_orders.router, prefix="/admin/orders", tags=["Admin Orders"])
app.include_router(delivery.router, prefix="/delivery", tags=["Delivery"])
app.include_router(vehicles.router, prefix="/vehicles", tags=["Vehicles"])
app.include_router(payments.router, prefix="/payments", tags=["Payments"])


@app.get("/")
def root():
    return {
        "cart": [
            "/cart", "/cart/add", "/cart/update/{id}",
            "/cart/remove/{id}", "/cart/clear"
        ],
        "checkout": ["/checkout/place-order"],
        "orders": [
            "/orders", "/orders/{id}", "/orders/{id}/timeline",
            "/orders/{id}/cancel", "/orders/{id}/received"
        ],
        "admin_orders": [
            "/admin/orders", "/admin/orders/{id}", "/admin/orders/{id}/approve",
            "/admin/orders/{id}/reject", "/admin/orders/{id}/assign-delivery-person",
            "/admin/orders/{id}/complete"
        ],
        "delivery": [
            "/delivery/orders", "/delivery/orders/{id}/complete",
            "/delivery/orders/{id}/reject"
        ],
        "vehicles": ["/vehicles", "/vehicles/delivery-charge"],
        "payments": [
            "/payments/{gateway}/create/{order_id}", "/payments/verify/{gateway_order_id}",
            "/payments/{gateway}/webhook", "/payments/order/{order_id}",
            "/payments/order/{order_id}/refund"
        ]
    }
