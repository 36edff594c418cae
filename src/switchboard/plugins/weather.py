"""Weather plugin.

Provides ``getWeather``: current conditions for a city from OpenWeatherMap.
Needs a key in the ``weather`` credential pool (``WEATHER_API_KEYS``).
"""

from __future__ import annotations

from typing import Any

import httpx

from switchboard.capabilities import Capability
from switchboard.extensions import CapabilityPlugin

OPENWEATHER_URL = "https://api.openweathermap.org/data/2.5/weather"


async def get_weather(params: dict[str, Any], context: dict[str, Any]) -> dict[str, Any]:
    city = str(params.get("city") or "").strip()
    if not city:
        raise ValueError("city is required")
    units = params.get("units") or "metric"

    query = {"q": city, "units": units, "appid": context["credential"]}
    async with httpx.AsyncClient(timeout=15) as client:
        resp = await client.get(OPENWEATHER_URL, params=query)

    if resp.status_code == 404:
        raise LookupError(f'City "{city}" not found')
    if resp.status_code >= 400:
        try:
            message = resp.json().get("message", "Unknown error")
        except ValueError:
            message = "Unknown error"
        raise RuntimeError(f"Weather API error: {resp.status_code} - {message}")

    data = resp.json()
    return {
        "city": data.get("name", city),
        "country": data.get("sys", {}).get("country"),
        "temperature": data["main"]["temp"],
        "feels_like": data["main"].get("feels_like"),
        "humidity": data["main"].get("humidity"),
        "wind_speed": data.get("wind", {}).get("speed"),
        "description": data["weather"][0]["description"],
        "icon": data["weather"][0].get("icon"),
    }


class WeatherPlugin(CapabilityPlugin):
    @property
    def name(self) -> str:
        return "weather"

    @property
    def description(self) -> str:
        return "Fetch current weather for a city"

    def capabilities(self) -> list[Capability]:
        return [
            Capability(
                name="getWeather",
                description="Get the current weather for a specified city",
                handler=get_weather,
                credential_name="weather",
                parameters={
                    "type": "object",
                    "properties": {
                        "city": {
                            "type": "string",
                            "description": "The city name to get weather for",
                        },
                        "units": {
                            "type": "string",
                            "enum": ["metric", "imperial"],
                            "description": "metric: Celsius, imperial: Fahrenheit",
                            "default": "metric",
                        },
                    },
                    "required": ["city"],
                },
            )
        ]
