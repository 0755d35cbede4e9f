"""Bulk document and snapshot models."""
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, field_validator

from metrics_reporter.core.models.health import EnvironmentInfo, HealthCheckResult
from metrics_reporter.core.models.metrics import VALUE_SOURCE_KINDS, MetricTags, ValueSource

_value_source_adapter = TypeAdapter(ValueSource)


def parse_value_source(source: Any) -> Any:
    """
    Validate a value source of a known kind.

    Sources of any other kind are returned unchanged so the reporter can skip
    them one by one instead of the whole snapshot being rejected.
    """
    if isinstance(source, dict):
        kind = source.get("kind")
    else:
        kind = getattr(source, "kind", None)

    if kind in VALUE_SOURCE_KINDS:
        return _value_source_adapter.validate_python(source)
    return source


class BulkDocument(BaseModel):
    """One tagged, timestamped record destined for one bulk-index entry."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(..., description="Formatted metric name")
    type: str = Field(..., description="Metric kind, or 'health' for health documents")
    fields: Dict[str, Any] = Field(..., description="Field values of the document")
    tags: MetricTags = Field(default_factory=MetricTags.empty, description="Tags of the document")
    timestamp: datetime = Field(..., description="Capture time of the document")

    def to_source(self) -> Dict[str, Any]:
        """
        Render the document body as sent to the bulk endpoint.

        Tags are rendered as a JSON object, so when a key repeats only its
        last value reaches Elasticsearch.

        Returns:
            Dict[str, Any]: JSON-serializable document body
        """
        return {
            "name": self.name,
            "type": self.type,
            "fields": dict(self.fields),
            "tags": self.tags.to_dict(),
            "timestamp": self.timestamp.isoformat(),
        }


class MetricsSnapshot(BaseModel):
    """Read-only view of the metrics registry for one report cycle."""

    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc), description="Time the snapshot was taken")
    contexts: Dict[str, List[Any]] = Field(
        default_factory=dict, description="Value sources grouped by context"
    )
    global_tags: MetricTags = Field(default_factory=MetricTags.empty, description="Tags applied to health documents")
    healthy: List[HealthCheckResult] = Field(default_factory=list)
    degraded: List[HealthCheckResult] = Field(default_factory=list)
    unhealthy: List[HealthCheckResult] = Field(default_factory=list)
    environment: Optional[EnvironmentInfo] = Field(None)

    @field_validator("contexts", mode="before")
    @classmethod
    def parse_contexts(cls, v):
        """Validate known value source kinds and keep the rest as given."""
        if not isinstance(v, dict):
            return v
        return {
            context: [parse_value_source(source) for source in sources]
            for context, sources in v.items()
        }

    @field_validator("global_tags", mode="before")
    @classmethod
    def parse_global_tags(cls, v):
        """Accept plain mappings for the global tags."""
        if isinstance(v, dict):
            return MetricTags.from_dict(v)
        return v
