"""Health check and environment models."""
from enum import Enum
from typing import Dict

from pydantic import BaseModel, ConfigDict, Field


class HealthStatus(str, Enum):
    """Status of a single health check."""

    HEALTHY = "healthy"
    DEGRADED = "degraded"
    UNHEALTHY = "unhealthy"


# Numeric codes for the overall health document
HEALTH_STATUS_HEALTHY = 1
HEALTH_STATUS_DEGRADED = 2
HEALTH_STATUS_UNHEALTHY = 3


class HealthCheckResult(BaseModel):
    """Result of one named health check."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(..., description="Name of the health check")
    status: HealthStatus = Field(..., description="Health status: 'healthy', 'degraded', or 'unhealthy'")
    message: str = Field("", description="Message reported by the check")


class EnvironmentInfo(BaseModel):
    """Environment metadata of the reporting process."""

    entries: Dict[str, str] = Field(default_factory=dict, description="Environment key/value pairs")
