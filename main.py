import asyncio
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from linkstats_app.config import settings
from linkstats_app.database.connection import engine, Base
from linkstats_app.api.v1 import analytics, redirect, urls
from linkstats_app.exceptions import DependencyFailureError
from linkstats_app.rate_limit import limiter

# Import models to ensure they're registered with Base
from linkstats_app.models import UrlMapping  # noqa: F401

if not logging.getLogger().handlers:
    logging.basicConfig(level=settings.log_level)

logger = logging.getLogger("linkstats")

# Create database tables
Base.metadata.create_all(bind=engine)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Run the visit worker inside the API process when configured to"""
    worker_task = None
    if settings.embedded_worker:
        from linkstats_app.hit_processor.visit_worker import build_worker

        worker = build_worker()
        worker_task = asyncio.create_task(worker.start())

    yield

    if worker_task is not None:
        worker.stop()
        worker_task.cancel()
        try:
            await worker_task
        except asyncio.CancelledError:
            pass


# Create FastAPI app
app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    description="URL shortener with per-visit analytics",
    debug=settings.debug,
    lifespan=lifespan
)

app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)


@app.exception_handler(DependencyFailureError)
async def dependency_failure_handler(request: Request, exc: DependencyFailureError):
    logger.error("Dependency failure on %s %s: %s", request.method, request.url.path, exc)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "Internal server error"}
    )


@app.get("/")
def read_root():
    """Root endpoint with API information"""
    return {
        "message": f"Welcome to {settings.app_name}",
        "version": settings.app_version,
        "docs": "/docs",
        "redoc": "/redoc"
    }


@app.get("/health")
def health_check():
    """Health check endpoint"""
    return {"status": "healthy", "environment": settings.environment}


######## Include routers
app.include_router(urls.router)
app.include_router(analytics.router)
# Catch-all /{alias} goes last
app.include_router(redirect.router)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("main:app", host=settings.host, port=settings.port, reload=settings.debug)
