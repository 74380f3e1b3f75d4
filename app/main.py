from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.config import settings
from app.database import init_db
from app.logging_config import configure_logging
from app.routes import (
    admin_payments,
    checkout,
    health,
    payments,
    user_library,
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging()
    # data layer is initialised once, before any request is served
    init_db()
    yield

app = FastAPI(title="Exam Batch Purchases API", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(checkout.router, prefix="/checkout", tags=["Checkout"])
app.include_router(payments.router, prefix="/payments", tags=["Payments"])
app.include_router(user_library.router, prefix="/library", tags=["Library"])
app.include_router(admin_payments.router, prefix="/admin/payments", tags=["Admin Payments"])
app.include_router(health.router, prefix="/health", tags=["Health"])


@app.get("/")
def root():
    return {
        "checkout_endpoints": [
            "/checkout/batch", "/checkout/verify"
        ],
        "payment_endpoints": [
            "/payments/webhook"
        ],
        "library_endpoints": [
            "/library", "/library/batches/{batch_id}/access"
        ],
        "admin_payment_endpoints": [
            "/admin/payments/orders", "/admin/payments/orders/{order_id}/timeline",
            "/admin/payments/access-grants",
            "/admin/payments/access-grants/{grant_id}/revoke"
        ],
    }
