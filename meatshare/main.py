from dotenv import load_dotenv
load_dotenv()

import logging
from contextlib import asynccontextmanager
from urllib.parse import urlparse

from fastapi import FastAPI, Request
from fastapi.exception_handlers import http_exception_handler
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.routing import APIRoute
from starlette.exceptions import HTTPException as StarletteHTTPException

from meatshare.config import get_settings
from meatshare.db.init_db import init_db

settings = get_settings()

logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger("meatshare")


def custom_generate_unique_id(route: APIRoute) -> str:
    return f"{route.tags[0]}_{route.name}" if route.tags else route.name


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db()
    logger.info("[BOOT] stripe configured = %s", bool(settings.stripe_secret_key))
    yield


app = FastAPI(
    title="Farm Direct Meat API",
    description="Bulk meat share marketplace - buyers, farmers and Stripe payments",
    version="1.0.0",
    generate_unique_id_function=custom_generate_unique_id,
    lifespan=lifespan,
)


# ============================
#  CORS
# ============================
origins = [
    "http://localhost:5173",
    "http://127.0.0.1:5173",
    settings.public_site_url,
]

origins.extend(settings.cors_origins)

clean_origins = []
for url in origins:
    parsed = urlparse(url)
    if parsed.scheme and parsed.netloc:
        clean_origins.append(f"{parsed.scheme}://{parsed.netloc}")
    else:
        clean_origins.append(url)

origins = list(sorted(set(clean_origins)))

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ============================
#  Errors
# ============================
@app.exception_handler(StarletteHTTPException)
async def method_not_allowed_handler(request: Request, exc: StarletteHTTPException):
    # payment endpoints answer every non-POST with {"error": ...}
    if exc.status_code == 405:
        return JSONResponse(status_code=405, content={"error": "Method not allowed"})
    return await http_exception_handler(request, exc)


# ============================
# Routers
# ============================

# --- Payments ---
from meatshare.integrations.payments.stripe.stripe_checkout_api import (
    router as stripe_checkout_router,
)
from meatshare.integrations.payments.stripe.stripe_webhook_api import (
    router as stripe_webhook_router,
)

# --- Marketplace ---
from meatshare.marketplace.api.public_shares_api import router as public_shares_router
from meatshare.marketplace.api.purchases_api import router as purchases_router

# --- Farmer ---
from meatshare.farmer.api.farm_api import router as farmer_farm_router
from meatshare.farmer.api.shares_api import router as farmer_shares_router

# --- Accounts ---
from meatshare.roles.role_api import router as roles_router
from meatshare.memberships.membership_api import router as memberships_router
from meatshare.waitlist.waitlist_api import router as waitlist_router

# --- Dev ---
from meatshare.dev.dev_api import router as dev_router

# ============================
# Router Registration
# ============================
app.include_router(stripe_checkout_router)
app.include_router(stripe_webhook_router)

app.include_router(public_shares_router)
app.include_router(purchases_router)

app.include_router(farmer_farm_router)
app.include_router(farmer_shares_router)

app.include_router(roles_router)
app.include_router(memberships_router)
app.include_router(waitlist_router)

app.include_router(dev_router, prefix="/dev")


@app.get("/")
def root():
    return {"message": "Farm Direct Meat API is running"}
