"""Weather widget data.

The site shows a small "current conditions" box. Conditions are a fixed
snapshot, not a live feed; `WeatherProvider` lets tests or a deployment plug
in something else.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Protocol

from vtjson import validate

from meadowlark.schemas import weather_location_schema


@dataclass(frozen=True, slots=True)
class WeatherLocation:
    name: str
    forecast_url: str
    icon_url: str
    condition: str
    temperature: str


type WeatherSnapshot = tuple[WeatherLocation, ...]


class WeatherProvider(Protocol):
    def snapshot(self) -> WeatherSnapshot:
        """Return the locations to display."""


DEFAULT_LOCATIONS: WeatherSnapshot = (
    WeatherLocation(
        name="Portland",
        forecast_url="http://www.wunderground.com/US/OR/Portland.html",
        icon_url="http://icons-ak.wxug.com/i/c/k/cloudy.gif",
        condition="Overcast",
        temperature="54.1 F (12.3 C)",
    ),
    WeatherLocation(
        name="Bend",
        forecast_url="http://www.wunderground.com/US/OR/Bend.html",
        icon_url="http://icons-ak.wxug.com/i/c/k/partlycloudy.gif",
        condition="Partly Cloudy",
        temperature="55.0 F (12.8 C)",
    ),
    WeatherLocation(
        name="Manzanita",
        forecast_url="http://www.wunderground.com/US/OR/Manzanita.html",
        icon_url="http://icons-ak.wxug.com/i/c/k/cloudy.gif",
        condition="Light Rain",
        temperature="55.0 F (12.8 C)",
    ),
)


class StaticWeatherProvider:
    """Serve a snapshot fixed at construction time."""

    def __init__(self, locations: WeatherSnapshot = DEFAULT_LOCATIONS) -> None:
        """Validate and freeze the locations."""
        for index, location in enumerate(locations):
            validate(
                weather_location_schema,
                asdict(location),
                name=f"weather[{index}]",
            )
        self._locations = tuple(locations)

    def snapshot(self) -> WeatherSnapshot:
        return self._locations
