"""GeoWeather: current weather with an offline cache fallback."""

__version__ = "1.0.0"
