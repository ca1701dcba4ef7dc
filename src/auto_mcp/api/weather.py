# Weather forecast API - Example application endpoints
# Exposed over HTTP and, through discovery, as MCP tools

import random
from datetime import date, timedelta
from typing import Any, Sequence

from fastapi import APIRouter, Depends, Request, Response
from pydantic import BaseModel, computed_field

from ..models.results import ActionResult, ok
from ..models.tool import ProblemDetails
from ..query import QueryOptions
from ..serialization.query_options import query_options

SUMMARIES = (
    "Freezing", "Bracing", "Chilly", "Cool", "Mild",
    "Warm", "Balmy", "Hot", "Sweltering", "Scorching",
)

router = APIRouter(prefix="/weatherforecast", tags=["WeatherForecast"])


class WeatherForecast(BaseModel):
    """Forecast for a single day."""

    date: date
    temperature_c: int
    summary: str | None = None

    @computed_field  # type: ignore[prop-decorator]
    @property
    def temperature_f(self) -> int:
        return 32 + int(self.temperature_c / 0.5556)


class WeatherRepository:
    """In-memory store of forecasts around today."""

    def __init__(self, forecasts: Sequence[WeatherForecast], seed: int | None = None) -> None:
        self.forecasts = list(forecasts)
        self._random = random.Random(seed)

    @classmethod
    def generate(
        cls, start: date | None = None, days: int = 365 * 3, seed: int | None = None
    ) -> "WeatherRepository":
        """Random forecasts for ``days`` consecutive days, starting a year back by default."""
        rng = random.Random(seed)
        start = start or date.today() - timedelta(days=365)
        forecasts = [
            WeatherForecast(
                date=start + timedelta(days=offset),
                temperature_c=rng.randint(-20, 54),
                summary=rng.choice(SUMMARIES),
            )
            for offset in range(days)
        ]
        return cls(forecasts, seed)

    def forecast_for(self, day: date) -> WeatherForecast:
        for forecast in self.forecasts:
            if forecast.date == day:
                return forecast
        return WeatherForecast(
            date=day,
            temperature_c=self._random.randint(-20, 54),
            summary=self._random.choice(SUMMARIES),
        )


def get_repository(request: Request) -> WeatherRepository:
    """Repository held in application state."""
    return request.app.state.weather_repository


@router.get(
    "/{date}",
    description="Get the weather forecast for the given date.",
    responses={"default": {"model": ProblemDetails}},
)
def get(
    date: date,
    repository: WeatherRepository = Depends(get_repository),  # noqa: B008
) -> ActionResult[WeatherForecast]:
    return ok(repository.forecast_for(date))


@router.get(
    "",
    description="Get multiple weather forecasts, filtered, ordered and paged by query options.",
    responses={"default": {"model": ProblemDetails}},
)
async def get_multiple(
    response: Response,
    options: QueryOptions[WeatherForecast] = Depends(query_options(WeatherForecast)),  # noqa: B008
    repository: WeatherRepository = Depends(get_repository),  # noqa: B008
) -> ActionResult[list[WeatherForecast | dict[str, Any]]]:
    # Projected results ($select) come back as plain mappings
    if options.count:
        response.headers["X-Total-Count"] = str(options.count_of(repository.forecasts))
    return ok(options.apply_to(repository.forecasts))
