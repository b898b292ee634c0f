"""API response schemas."""

from pydantic import BaseModel, Field


class ErrorDetail(BaseModel):
    """Error detail."""

    code: str = Field(..., description="Error code")
    message: str = Field(..., description="Error message")
    upstream_status: int | None = Field(
        default=None, description="Status code returned by the weather provider"
    )


class ErrorResponse(BaseModel):
    """Error response."""

    error: ErrorDetail


class HealthResponse(BaseModel):
    """Health check response."""

    status: str = Field(..., description="Health status")


class ReadinessResponse(BaseModel):
    """Readiness check response."""

    status: str = Field(..., description="Readiness status")
    checks: dict[str, str] = Field(default_factory=dict, description="Component checks")
