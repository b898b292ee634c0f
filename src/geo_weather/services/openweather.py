"""OpenWeatherMap API client."""

import asyncio
import math
from datetime import UTC, datetime
from typing import Any

import httpx
import structlog
from prometheus_client import Counter, Histogram
from pydantic import ValidationError

from geo_weather.config import Settings
from geo_weather.exceptions import (
    InvalidDataError,
    NetworkError,
    UpstreamAPIError,
    UpstreamTimeoutError,
)
from geo_weather.models import WeatherRecord

logger = structlog.get_logger()

UNITS = "metric"
DEFAULT_ICON = "01d"

# Accepted observation window: 2000-01-01 to 2100-01-01, Unix seconds
MIN_OBSERVATION_TS = 946684800
MAX_OBSERVATION_TS = 4102444800

STATUS_MESSAGES = {
    401: "Invalid API key or unauthorized access",
    404: "Resource not found",
    429: "Too many requests. Please try again later",
}

# Metrics
upstream_requests = Counter(
    "upstream_requests_total",
    "Total upstream API requests",
    ["status"],
)
upstream_duration = Histogram(
    "upstream_request_duration_seconds",
    "Upstream request duration in seconds",
    buckets=[0.05, 0.1, 0.25, 0.5, 0.75, 1.0, 2.5, 5.0, 10.0],
)


class CancelToken:
    """Handle for cancelling an in-flight upstream request."""

    def __init__(self) -> None:
        self._event = asyncio.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def is_cancelled(self) -> bool:
        return self._event.is_set()

    async def wait(self) -> None:
        await self._event.wait()


class OpenWeatherClient:
    """HTTP client for the OpenWeatherMap current weather API."""

    def __init__(self, settings: Settings) -> None:
        """Initialize client with settings."""
        self._base_url = settings.upstream_url
        self._api_key = settings.api_key
        self._lang = settings.upstream_lang
        self._timeout = httpx.Timeout(
            settings.upstream_receive_timeout_seconds,
            connect=settings.upstream_connect_timeout_seconds,
        )

    async def fetch_by_coordinates(
        self,
        lat: float,
        lon: float,
        cancel_token: CancelToken | None = None,
    ) -> WeatherRecord:
        """Fetch current weather for coordinates.

        Args:
            lat: Latitude (-90 to 90)
            lon: Longitude (-180 to 180)
            cancel_token: Optional handle to abort the request

        Returns:
            Validated weather record

        Raises:
            UpstreamTimeoutError: If the request times out
            UpstreamAPIError: If upstream returns a non-success status
            InvalidDataError: If the response cannot be validated
            NetworkError: On connection errors or cancellation
        """
        return await self._fetch({"lat": lat, "lon": lon}, cancel_token)

    async def fetch_by_city(
        self,
        name: str,
        cancel_token: CancelToken | None = None,
    ) -> WeatherRecord:
        """Fetch current weather for a city name.

        Raises the same errors as :meth:`fetch_by_coordinates`.
        """
        return await self._fetch({"q": name}, cancel_token)

    async def _fetch(
        self,
        query_params: dict[str, str | float],
        cancel_token: CancelToken | None,
    ) -> WeatherRecord:
        params: dict[str, str | float] = {
            **query_params,
            "appid": self._api_key,
            "units": UNITS,
            "lang": self._lang,
        }

        if cancel_token is not None and cancel_token.is_cancelled:
            upstream_requests.labels(status="cancelled").inc()
            raise NetworkError("Request cancelled")

        logger.debug("Sending upstream request", url=self._base_url, **query_params)

        with upstream_duration.time():
            try:
                async with httpx.AsyncClient(timeout=self._timeout) as client:
                    response = await self._send(client, params, cancel_token)

            except httpx.TimeoutException as e:
                upstream_requests.labels(status="timeout").inc()
                logger.warning("Upstream request timed out", error=str(e))
                raise UpstreamTimeoutError() from e

            except httpx.ConnectError as e:
                upstream_requests.labels(status="error").inc()
                logger.error("Upstream connection failed", error=str(e))
                raise NetworkError() from e

            except httpx.RequestError as e:
                upstream_requests.labels(status="error").inc()
                logger.error("Upstream request failed", error=str(e))
                raise NetworkError(str(e) or None) from e

        if not response.is_success:
            upstream_requests.labels(status="error").inc()
            message = _error_message(response)
            logger.error(
                "Upstream API error",
                status_code=response.status_code,
                detail=message,
            )
            raise UpstreamAPIError(message, response.status_code)

        upstream_requests.labels(status="success").inc()

        try:
            data = response.json()
        except ValueError as e:
            raise InvalidDataError("Response body is not valid JSON") from e

        return parse_weather_response(data)

    async def _send(
        self,
        client: httpx.AsyncClient,
        params: dict[str, str | float],
        cancel_token: CancelToken | None,
    ) -> httpx.Response:
        if cancel_token is None:
            return await client.get(self._base_url, params=params)

        request = asyncio.ensure_future(client.get(self._base_url, params=params))
        cancelled = asyncio.ensure_future(cancel_token.wait())
        try:
            done, _ = await asyncio.wait(
                {request, cancelled},
                return_when=asyncio.FIRST_COMPLETED,
            )
        except asyncio.CancelledError:
            request.cancel()
            raise
        finally:
            cancelled.cancel()

        if request in done:
            return request.result()

        request.cancel()
        await asyncio.wait({request})
        upstream_requests.labels(status="cancelled").inc()
        logger.info("Upstream request cancelled")
        raise NetworkError("Request cancelled")


def _error_message(response: httpx.Response) -> str:
    """Extract a readable message from an error response."""
    try:
        body = response.json()
    except ValueError:
        body = None

    if isinstance(body, dict):
        for field in ("message", "error", "detail"):
            if field in body:
                return str(body[field])

    status_code = response.status_code
    if status_code in STATUS_MESSAGES:
        return STATUS_MESSAGES[status_code]
    if status_code >= 500:
        return "Server error occurred"
    return response.reason_phrase or NetworkError.default_message


def parse_weather_response(data: Any) -> WeatherRecord:
    """Validate an OpenWeatherMap response and build a weather record.

    Sections ``main`` and ``coord`` and a non-empty ``weather`` array are
    mandatory. Individual numeric fields are coerced leniently and default
    to zero when absent.

    Raises:
        InvalidDataError: If required data is missing or malformed
    """
    if not isinstance(data, dict):
        raise InvalidDataError("Response body is not a JSON object")

    if "id" not in data or "name" not in data:
        raise InvalidDataError("Missing required weather data fields")

    conditions = data.get("weather")
    if not isinstance(conditions, list) or not conditions:
        raise InvalidDataError("Weather array is missing or empty")

    condition = conditions[0]
    if not isinstance(condition, dict):
        raise InvalidDataError("Malformed weather condition entry")

    main = data.get("main")
    coord = data.get("coord")
    if not isinstance(main, dict) or not isinstance(coord, dict):
        raise InvalidDataError("Missing essential weather data sections")

    wind = _section(data, "wind")
    clouds = _section(data, "clouds")
    sys = _section(data, "sys")

    try:
        return WeatherRecord(
            id=_require_int(data["id"]),
            city=_or_default(data["name"], "Unknown"),
            country=_or_default(sys.get("country"), ""),
            latitude=_to_float(coord.get("lat")),
            longitude=_to_float(coord.get("lon")),
            temperature=_to_float(main.get("temp")),
            feels_like=_to_float(main.get("feels_like")),
            min_temperature=_to_float(main.get("temp_min")),
            max_temperature=_to_float(main.get("temp_max")),
            humidity=_to_int(main.get("humidity")),
            pressure=_to_int(main.get("pressure")),
            wind_speed=_to_float(wind.get("speed")),
            cloudiness=_to_int(clouds.get("all")),
            visibility=_to_int(data.get("visibility")),
            description=_or_default(condition.get("description"), ""),
            condition_main=_or_default(condition.get("main"), ""),
            icon_code=_or_default(condition.get("icon"), DEFAULT_ICON),
            sunrise=_to_int(sys.get("sunrise")),
            sunset=_to_int(sys.get("sunset")),
            observed_at=_observation_time(data.get("dt")),
        )
    except (ValidationError, ValueError, TypeError, OverflowError) as e:
        raise InvalidDataError(f"Failed to parse weather data: {e}") from e


def _section(data: dict[str, Any], name: str) -> dict[str, Any]:
    value = data.get(name)
    return value if isinstance(value, dict) else {}


def _or_default(value: Any, default: str) -> Any:
    return default if value is None else value


def _to_float(value: Any) -> float:
    """Coerce numbers and numeric strings, defaulting to 0.0.

    NaN and infinities also fall back to 0.0.
    """
    if isinstance(value, bool):
        return 0.0
    if isinstance(value, int | float):
        number = float(value)
    elif isinstance(value, str):
        try:
            number = float(value)
        except ValueError:
            return 0.0
    else:
        return 0.0
    return number if math.isfinite(number) else 0.0


def _to_int(value: Any) -> int:
    """Coerce numbers and numeric strings, defaulting to 0."""
    if isinstance(value, bool):
        return 0
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if math.isfinite(value) else 0
    if isinstance(value, str):
        try:
            return int(value)
        except ValueError:
            return 0
    return 0


def _require_int(value: Any) -> int:
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    if isinstance(value, str):
        try:
            return int(value)
        except ValueError as e:
            raise InvalidDataError(f"Invalid location id: {value!r}") from e
    raise InvalidDataError(f"Invalid location id: {value!r}")


def _observation_time(value: Any) -> datetime:
    timestamp = _to_int(value)
    if timestamp < MIN_OBSERVATION_TS or timestamp > MAX_OBSERVATION_TS:
        return datetime.now(UTC)
    return datetime.fromtimestamp(timestamp, tz=UTC)
