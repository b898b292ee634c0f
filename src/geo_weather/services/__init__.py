"""Weather data services."""
