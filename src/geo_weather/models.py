"""Weather record and query models."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class WeatherRecord(BaseModel):
    """Validated current weather for one location.

    Records are built from a provider response and never mutated. Two records
    are equal when every field matches.
    """

    model_config = ConfigDict(frozen=True, allow_inf_nan=False)

    id: int = Field(..., description="Provider-assigned location ID")
    city: str = Field(..., description="Location name")
    country: str = Field(..., description="Country code")
    latitude: float = Field(..., ge=-90, le=90, description="Latitude")
    longitude: float = Field(..., ge=-180, le=180, description="Longitude")

    temperature: float = Field(..., description="Temperature in Celsius")
    feels_like: float = Field(..., description="Perceived temperature in Celsius")
    min_temperature: float = Field(..., description="Minimum temperature in Celsius")
    max_temperature: float = Field(..., description="Maximum temperature in Celsius")

    humidity: int = Field(..., ge=0, le=100, description="Humidity percentage")
    pressure: int = Field(..., description="Atmospheric pressure in hPa")
    wind_speed: float = Field(..., description="Wind speed in m/s")
    cloudiness: int = Field(..., ge=0, le=100, description="Cloudiness percentage")
    visibility: int = Field(..., description="Visibility in meters")

    description: str = Field(..., description="Condition description")
    condition_main: str = Field(..., description="Condition group, e.g. Rain")
    icon_code: str = Field(..., description="Condition icon code")

    sunrise: int = Field(..., description="Sunrise as Unix seconds")
    sunset: int = Field(..., description="Sunset as Unix seconds")
    observed_at: datetime = Field(..., description="Observation timestamp")

    def to_cache_string(self) -> str:
        """Serialize the record for the key-value storage."""
        return self.model_dump_json()

    @classmethod
    def from_cache_string(cls, value: str) -> "WeatherRecord":
        """Rebuild a record serialized by :meth:`to_cache_string`."""
        return cls.model_validate_json(value)


class ByCoordinates(BaseModel):
    """Query by geographic coordinates."""

    model_config = ConfigDict(frozen=True)

    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)

    @property
    def cache_key(self) -> str:
        return f"{self.latitude}_{self.longitude}"


class ByCity(BaseModel):
    """Query by city name."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(..., min_length=1)

    @property
    def cache_key(self) -> str:
        # Not normalized: "London" and "london" are separate cache slots
        return self.name


Query = ByCoordinates | ByCity
