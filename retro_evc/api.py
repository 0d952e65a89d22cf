"""
REST API module for the Retro EVC weather backend.

Provides read-only endpoints for the display:
- Startup payload (playlist, crawler, feature flags)
- Main-screen weather snapshot
- Surrounding and US city observations
- Climate summaries (season precipitation, last month)
- Manitoba regional high/low
"""

import logging
import os
from contextlib import asynccontextmanager
from typing import Any, Dict, List, Optional, Union

from fastapi import FastAPI, HTTPException, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel

from .config import load_config
from .dashboard import WeatherDashboard
from .errors import FetchError, ParseError

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO"),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

DEFAULT_PORT = 8600
DEFAULT_CORS_ORIGINS = "http://localhost:8080"


# =============================================================================
# Pydantic Models
# =============================================================================

class Playlist(BaseModel):
    files: List[str]
    file_count: int


class Crawler(BaseModel):
    messages: List[str]
    message_count: int


class InitResponse(BaseModel):
    playlist: Playlist
    crawler: Crawler
    showMBHighLow: bool


class SeasonPrecipResponse(BaseModel):
    isWinter: bool
    totalPrecip: Optional[float]
    normalPrecip: Optional[float]


class LastMonthResponse(BaseModel):
    summary: Union[Dict[str, Any], bool]


class ObservationsResponse(BaseModel):
    observations: List[Dict[str, Any]]


# =============================================================================
# FastAPI Application
# =============================================================================

def get_dashboard(request: Request) -> WeatherDashboard:
    return request.app.state.dashboard


def create_app(dashboard: Optional[WeatherDashboard] = None) -> FastAPI:
    """
    Build the application around a dashboard.

    Without a dashboard the config file is loaded (ConfigError if it is
    missing or corrupted) and a new one is built.
    """
    if dashboard is None:
        dashboard = WeatherDashboard(load_config())

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Application lifespan manager."""
        logger.info("Starting Retro EVC backend...")
        app.state.dashboard.start()
        yield
        logger.info("Shutting down...")
        app.state.dashboard.stop()
        logger.info("Shutdown complete")

    app = FastAPI(
        title="Retro EVC Weather API",
        description="Environment Canada weather data for the retro display",
        version="1.0.0",
        lifespan=lifespan
    )
    app.state.dashboard = dashboard

    app.add_middleware(
        CORSMiddleware,
        allow_origins=os.getenv("CORS_ORIGINS", DEFAULT_CORS_ORIGINS).split(","),
        allow_methods=["GET"],
        allow_headers=["*"],
    )

    register_routes(app)
    return app


def register_routes(app: FastAPI) -> None:

    @app.get("/health", tags=["Health"])
    def health_check(request: Request):
        """Scheduler state and the last tick of every feed."""
        return get_dashboard(request).health()

    @app.get("/api/init", response_model=InitResponse, tags=["Display"])
    def init(request: Request):
        return get_dashboard(request).init_payload()

    @app.get("/api/weather2", tags=["Weather"])
    def weather(request: Request):
        """Main-screen snapshot; 404 when the citypage can't be fetched."""
        try:
            return get_dashboard(request).current_weather()
        except (FetchError, ParseError) as e:
            logger.warning(f"Current conditions unavailable: {e}")
            raise HTTPException(status_code=404, detail="Current conditions unavailable")

    @app.get("/api/climate/season/precip", response_model=SeasonPrecipResponse, tags=["Climate"])
    def season_precip(request: Request):
        return get_dashboard(request).season_precip()

    @app.get("/api/climate/lastmonth", response_model=LastMonthResponse, tags=["Climate"])
    def last_month(request: Request):
        return get_dashboard(request).last_month()

    @app.get("/api/weather/surrounding", response_model=ObservationsResponse, tags=["Weather"])
    def surrounding(request: Request):
        return get_dashboard(request).surrounding_observations()

    @app.get("/api/weather/usa", response_model=ObservationsResponse, tags=["Weather"])
    def usa(request: Request):
        return get_dashboard(request).usa_observations()

    @app.get("/api/weather/mb_highlow", tags=["Weather"])
    def mb_highlow(request: Request):
        """Regional high/low, or no content when the screen is disabled."""
        payload = get_dashboard(request).regional_highlow()
        if payload is None:
            return Response(status_code=204)
        return payload


def main() -> None:
    import uvicorn
    uvicorn.run(
        "retro_evc.api:create_app",
        factory=True,
        host=os.getenv("HOST", "0.0.0.0"),
        port=int(os.getenv("PORT", str(DEFAULT_PORT))),
    )


if __name__ == "__main__":
    main()
