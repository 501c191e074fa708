"""Main FastAPI application."""
import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text

from portfolio_ledger.core.config import settings
from portfolio_ledger.core.telemetry import configure_telemetry, instrument_app
from portfolio_ledger.api.errors import register_exception_handlers
from portfolio_ledger.api.routes import dashboard, portfolios, stocks
from portfolio_ledger.db.migrate import create_schema
from portfolio_ledger.db.session import AsyncSessionLocal, engine

# Configure logging
logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)

# Configure OpenTelemetry before the app is created so startup logs are exported
if settings.otel_enabled:
    configure_telemetry()

SERVICE_NAME = "Portfolio Ledger API"
SERVICE_VERSION = "0.1.0"


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifecycle manager for startup and shutdown events."""
    # Startup
    logger.info(f"Starting {SERVICE_NAME}...")
    logger.info(f"Environment: {'Development' if settings.debug else 'Production'}")
    if settings.auto_migrate:
        await create_schema(engine)
    yield
    # Shutdown
    logger.info(f"Shutting down {SERVICE_NAME}...")
    await engine.dispose()


# Create FastAPI app
app = FastAPI(
    title=SERVICE_NAME,
    description="Portfolio ledger, valuation summary and dashboard",
    version=SERVICE_VERSION,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_exception_handlers(app)

if settings.otel_enabled:
    instrument_app(app)

# Include routers
app.include_router(portfolios.router)
app.include_router(dashboard.router)
app.include_router(stocks.router)


@app.get("/", tags=["Health"])
async def root():
    """Root endpoint - basic service info."""
    return {
        "status": "healthy",
        "service": SERVICE_NAME,
        "version": SERVICE_VERSION
    }


@app.get("/health", tags=["Health"])
async def health_check():
    """
    Health check endpoint.

    Verifies database connectivity (executes SELECT 1) and reports which
    quote provider is configured.

    Returns 200 if the database is reachable, 503 otherwise.
    """
    health_status = {
        "status": "healthy",
        "service": SERVICE_NAME,
        "version": SERVICE_VERSION,
        "checks": {}
    }

    # Check database connectivity
    try:
        async with AsyncSessionLocal() as session:
            result = await session.execute(text("SELECT 1"))
            result.scalar()
            health_status["checks"]["database"] = {
                "status": "healthy",
                "message": "Connected"
            }
    except Exception as e:
        logger.error(f"Database health check failed: {e}")
        health_status["status"] = "unhealthy"
        health_status["checks"]["database"] = {
            "status": "unhealthy",
            "message": f"Connection failed: {str(e)}"
        }

    provider = (settings.stock_provider or "stub").strip().lower()
    health_status["checks"]["quotes"] = {
        "status": "configured" if provider != "live" or settings.is_live_provider_configured else "not_configured",
        "provider": provider
    }

    status_code = status.HTTP_200_OK if health_status["status"] == "healthy" else status.HTTP_503_SERVICE_UNAVAILABLE

    return JSONResponse(content=health_status, status_code=status_code)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "portfolio_ledger.api.main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.api_reload,
        log_level=settings.log_level.lower()
    )
