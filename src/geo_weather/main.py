"""Application entry point."""

import uvicorn
from fastapi import FastAPI
from prometheus_client import make_asgi_app

from geo_weather import __version__
from geo_weather.api.routes import api_router, health_router
from geo_weather.config import get_settings
from geo_weather.middleware.logging import LoggingMiddleware, configure_logging


def create_app() -> FastAPI:
    """Create and configure FastAPI application."""
    settings = get_settings()

    configure_logging(settings)

    app = FastAPI(
        title="GeoWeather API",
        description="Current weather with offline cache fallback",
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
    )

    app.add_middleware(LoggingMiddleware)

    app.include_router(api_router)
    app.include_router(health_router)

    # Mount Prometheus metrics endpoint
    app.mount("/metrics", make_asgi_app())

    return app


# Create app instance for ASGI servers
app = create_app()


def run() -> None:
    """Run the application with uvicorn."""
    settings = get_settings()
    uvicorn.run(
        "geo_weather.main:app",
        host=settings.app_host,
        port=settings.app_port,
        reload=False,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    run()
