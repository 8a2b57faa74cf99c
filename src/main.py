"""FastAPI application entry point."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from src.api import debug, passwords, signup, subscriptions, webhooks
from src.config import ConfigurationError, get_settings
from src.services.auth_provider import AuthProviderClient
from src.services.payment import PaymentClient

settings = get_settings()

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Build the shared external clients once per process."""
    app.state.payment_client = PaymentClient.from_settings(settings)
    app.state.auth_provider = AuthProviderClient.from_settings(settings)
    if not app.state.payment_client.is_configured:
        logger.warning("STRIPE_SECRET_KEY not set, Stripe lookups disabled")
    if not app.state.auth_provider.is_configured:
        logger.warning("Supabase auth not configured, reset emails disabled")
    yield


app = FastAPI(
    title="Pro Provisioning API",
    description="Signup, password reset and Stripe-driven pro accounts",
    version="0.1.0",
    lifespan=lifespan,
)

# CORS middleware for development
if settings.is_development:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["http://localhost:3000"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )


@app.exception_handler(ConfigurationError)
async def configuration_error_handler(request: Request, exc: ConfigurationError) -> JSONResponse:
    """Missing secrets are a server problem; keep the details in the logs."""
    logger.error(f"Configuration error on {request.url.path}: {exc}")
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"success": False, "message": "Server configuration error"},
    )


# Register routers
app.include_router(signup.router)
app.include_router(passwords.router)
app.include_router(webhooks.router)
app.include_router(subscriptions.router)
app.include_router(debug.router)


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy", "environment": settings.environment}
