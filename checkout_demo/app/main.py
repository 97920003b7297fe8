"""FastAPI application serving the demo payment API."""

from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .. import __version__
from ..core.config import get_settings
from ..core.logging import setup_logging, get_logger
from .payments import error_response, router as payments_router


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    # Startup
    setup_logging()
    logger = get_logger(__name__)
    settings = get_settings()

    logger.info(
        "Demo payment API starting",
        environment=settings.environment.value,
        return_base_url=settings.return_base_url,
    )

    yield

    # Shutdown
    logger.info("Demo payment API shutting down")


app = FastAPI(
    title="Checkout Demo Payment API",
    description="Demo-mode payment API backing the drop-in checkout demo",
    version=__version__,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["*"],
)

app.include_router(payments_router)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Report malformed bodies the way the payment API does."""
    errors = exc.errors()
    detail = errors[0]["msg"] if errors else "invalid body"
    return error_response(f"Invalid request parameters: {detail}")


@app.get("/")
async def root():
    """Health check endpoint."""
    settings = get_settings()
    return JSONResponse({
        "service": "Checkout Demo Payment API",
        "status": "running",
        "environment": settings.environment.value,
        "version": __version__,
    })


@app.get("/health")
async def health():
    """Kubernetes-style health check."""
    return JSONResponse({"status": "healthy"})


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "checkout_demo.app.main:app",
        host="0.0.0.0",
        port=8080,
        reload=not settings.is_cloud_environment(),
    )
