"""Main FastAPI application entry point."""

import os
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from . import __version__
from .api import ai, health, library, packs, uploads, webhooks
from .core import AuthGate, JobCorrelationWorkflow, WebhookVerifier
from .providers import FalAIClient, UploadGateway
from .storage import BaseStorage, SupabaseStorage
from .utils.config import Config, load_config
from .utils.errors import PhotoAIError, ProviderError
from .utils.logger import get_logger

logger = get_logger(__name__)


def _wire(app: FastAPI):
    """Build every component that can be derived from what is already on app.state."""
    state = app.state
    config: Optional[Config] = state.config

    if config is not None:
        if state.auth_gate is None:
            state.auth_gate = AuthGate(config.auth_jwt_key, config.jwt_algorithms)
        if state.webhook_verifier is None:
            state.webhook_verifier = WebhookVerifier(
                secret=config.webhook_secret,
                allowed_ips=config.allowed_webhook_ips,
            )

    if state.workflow is None and state.storage is not None and state.provider is not None:
        state.workflow = JobCorrelationWorkflow(state.storage, state.provider)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Lifespan context manager for startup and shutdown.

    Constructs whatever create_app() was not handed, opens connections,
    and closes the ones it opened on shutdown.
    """
    logger.info("Application starting up...")
    state = app.state
    owned = []

    try:
        if state.config is None:
            state.config = load_config()
        config = state.config

        if state.storage is None:
            state.storage = SupabaseStorage(config.supabase_url, config.supabase_service_key)
            owned.append(state.storage)

        if state.provider is None:
            state.provider = FalAIClient(
                api_key=config.fal_key,
                settings=config.provider,
                webhook_base_url=config.webhook_base_url,
                webhook_secret=config.webhook_secret,
            )
            owned.append(state.provider)

        if state.uploads is None:
            state.uploads = UploadGateway(
                bucket=config.bucket_name,
                access_key=config.s3_access_key,
                secret_key=config.s3_secret_key,
                settings=config.uploads,
                endpoint_url=config.s3_endpoint,
                region=config.s3_region,
            )

        for component in owned:
            await component.initialize()

        _wire(app)

        if not state.webhook_verifier.enabled:
            logger.warning(
                "Webhook verification disabled: set WEBHOOK_SECRET or WEBHOOK_ALLOWED_IPS"
            )

        logger.info("Application startup complete")

    except Exception as e:
        logger.error(f"Startup failed: {e}")
        raise

    yield

    logger.info("Application shutting down...")
    for component in reversed(owned):
        await component.close()
    logger.info("Application shutdown complete")


def create_app(
    config: Optional[Config] = None,
    storage: Optional[BaseStorage] = None,
    provider: Optional[FalAIClient] = None,
    upload_gateway: Optional[UploadGateway] = None,
    auth_gate: Optional[AuthGate] = None,
    webhook_verifier: Optional[WebhookVerifier] = None,
) -> FastAPI:
    """
    Create the application.

    Every collaborator may be passed in; anything left out is built from
    configuration during startup.
    """
    app = FastAPI(
        title="Photo AI Backend",
        description="Model training and image generation backed by fal.ai",
        version=__version__,
        lifespan=lifespan,
    )

    app.state.config = config
    app.state.storage = storage
    app.state.provider = provider
    app.state.uploads = upload_gateway
    app.state.auth_gate = auth_gate
    app.state.webhook_verifier = webhook_verifier
    app.state.workflow = None
    _wire(app)

    # Add CORS middleware (adjust origins for production)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],  # Restrict in production
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    _register_exception_handlers(app)

    app.include_router(health.router, prefix="/health", tags=["health"])
    app.include_router(uploads.router, tags=["uploads"])
    app.include_router(ai.router, prefix="/ai", tags=["ai"])
    app.include_router(packs.router, prefix="/pack", tags=["packs"])
    app.include_router(library.router, tags=["library"])
    app.include_router(webhooks.router, prefix="/fal-ai/webhook", tags=["webhooks"])

    @app.get("/")
    async def root():
        """Root endpoint."""
        return {
            "service": "photoai-backend",
            "version": __version__,
            "status": "running",
            "docs": "/docs",
        }

    return app


def _register_exception_handlers(app: FastAPI):
    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        return JSONResponse(
            status_code=411,
            content={"message": "Input incorrect", "errors": jsonable_encoder(exc.errors())},
        )

    @app.exception_handler(PhotoAIError)
    async def photoai_error_handler(request: Request, exc: PhotoAIError):
        if isinstance(exc, ProviderError):
            logger.error(
                f"Provider call failed: {exc.message}",
                extra={"path": request.url.path, "upstream_status": exc.upstream_status}
            )
        elif exc.status_code >= 500:
            logger.error(
                f"Request failed: {exc.message}",
                extra={"path": request.url.path}
            )
        return JSONResponse(status_code=exc.status_code, content={"message": exc.message})


app = create_app()


def main():
    """Run the API with uvicorn."""
    import uvicorn

    port = int(os.getenv("PORT", 8080))

    uvicorn.run(
        "photoai.main:app",
        host="0.0.0.0",
        port=port,
        log_level=os.getenv("LOG_LEVEL", "info").lower(),
    )


if __name__ == "__main__":
    main()
