"""Core metrics data models."""
from typing import Annotated, Any, Dict, List, Literal, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field, model_validator


class MetricTags(BaseModel):
    """
    Ordered set of tags attached to a metric.

    Keys and values are held as parallel tuples so the display order is
    preserved exactly as supplied. Keys are not de-duplicated.
    """

    model_config = ConfigDict(frozen=True)

    keys: Tuple[str, ...] = Field(default=(), description="Tag keys, in display order")
    values: Tuple[str, ...] = Field(default=(), description="Tag values, parallel to keys")

    @model_validator(mode="after")
    def check_parallel(self) -> "MetricTags":
        """Keys and values must pair up one to one."""
        if len(self.keys) != len(self.values):
            raise ValueError(
                f"Tag keys and values differ in length: {len(self.keys)} != {len(self.values)}"
            )
        return self

    @classmethod
    def empty(cls) -> "MetricTags":
        return cls()

    @classmethod
    def single(cls, key: str, value: str) -> "MetricTags":
        return cls(keys=(key,), values=(value,))

    @classmethod
    def from_dict(cls, tags: Optional[Dict[str, str]]) -> "MetricTags":
        """Build tags from a mapping, keeping its iteration order."""
        tags = tags or {}
        return cls(keys=tuple(tags.keys()), values=tuple(str(v) for v in tags.values()))

    @classmethod
    def concat(cls, first: "MetricTags", second: "MetricTags") -> "MetricTags":
        """
        Concatenate two tag sets.

        Args:
            first: Base tags, kept first
            second: Additional tags, appended after the base tags

        Returns:
            MetricTags: A new tag set; neither input is modified
        """
        return cls(keys=first.keys + second.keys, values=first.values + second.values)

    def items(self) -> List[Tuple[str, str]]:
        return list(zip(self.keys, self.values))

    def to_dict(self) -> Dict[str, str]:
        return dict(self.items())


class _Value(BaseModel):
    model_config = ConfigDict(frozen=True)


class SetItem(_Value):
    """Per-item breakdown of a counter."""

    item: str = Field(..., description="Item discriminator, reported as the 'item' tag")
    count: int = Field(..., description="Count recorded for this item")
    percent: float = Field(0.0, description="Share of the counter total, in percent")


class CounterValue(_Value):
    """Snapshot of a counter."""

    count: int = Field(..., description="Current count")
    items: Tuple[SetItem, ...] = Field(default=(), description="Per-item breakdown")


class MeterValue(_Value):
    """Snapshot of a meter's rates."""

    count: int = Field(..., description="Number of marked events")
    mean_rate: float = Field(0.0, description="Mean rate since the meter was created")
    one_minute_rate: float = Field(0.0, description="One minute exponentially weighted rate")
    five_minute_rate: float = Field(0.0, description="Five minute exponentially weighted rate")
    fifteen_minute_rate: float = Field(0.0, description="Fifteen minute exponentially weighted rate")
    rate_unit: str = Field("s", description="Unit the rates are expressed in")
    items: Tuple["MeterSetItem", ...] = Field(default=(), description="Per-item breakdown")

    def to_fields(self) -> Dict[str, Any]:
        return {
            "count.meter": self.count,
            "rate1m": self.one_minute_rate,
            "rate5m": self.five_minute_rate,
            "rate15m": self.fifteen_minute_rate,
            "rate.mean": self.mean_rate,
        }


class MeterSetItem(_Value):
    """Per-item breakdown of a meter."""

    item: str = Field(..., description="Item discriminator, reported as the 'item' tag")
    percent: float = Field(0.0, description="Share of the meter total, in percent")
    value: MeterValue = Field(..., description="Rates recorded for this item")


MeterValue.model_rebuild()
MeterSetItem.model_rebuild()


class HistogramValue(_Value):
    """Statistical summary of a histogram's reservoir."""

    count: int = Field(..., description="Number of recorded values")
    sum: float = Field(0.0)
    last_value: float = Field(0.0)
    last_user_value: Optional[str] = Field(None)
    max: float = Field(0.0)
    max_user_value: Optional[str] = Field(None)
    mean: float = Field(0.0)
    median: float = Field(0.0)
    min: float = Field(0.0)
    min_user_value: Optional[str] = Field(None)
    percentile_75: float = Field(0.0)
    percentile_95: float = Field(0.0)
    percentile_98: float = Field(0.0)
    percentile_99: float = Field(0.0)
    percentile_999: float = Field(0.0)
    sample_size: int = Field(0)
    std_dev: float = Field(0.0)

    def to_fields(self) -> Dict[str, Any]:
        fields: Dict[str, Any] = {
            "samples": self.sample_size,
            "last": self.last_value,
            "count.hist": self.count,
            "sum": self.sum,
            "min": self.min,
            "max": self.max,
            "mean": self.mean,
            "median": self.median,
            "stddev": self.std_dev,
            "p999": self.percentile_999,
            "p99": self.percentile_99,
            "p98": self.percentile_98,
            "p95": self.percentile_95,
            "p75": self.percentile_75,
        }

        # User values are only reported when they were recorded
        if self.last_user_value:
            fields["user.last"] = self.last_user_value
        if self.min_user_value:
            fields["user.min"] = self.min_user_value
        if self.max_user_value:
            fields["user.max"] = self.max_user_value

        return fields


class TimerValue(_Value):
    """Snapshot of a timer: a rate meter plus a duration histogram."""

    rate: MeterValue = Field(..., description="Rate at which the timed operation occurs")
    histogram: HistogramValue = Field(..., description="Distribution of recorded durations")
    active_sessions: int = Field(0, description="Timings currently in progress")
    total_time: float = Field(0.0, description="Sum of all recorded durations")


class ApdexValue(_Value):
    """Snapshot of an Apdex score."""

    score: float = Field(..., description="Apdex score between 0 and 1")
    satisfied: int = Field(0)
    tolerating: int = Field(0)
    frustrating: int = Field(0)
    sample_size: int = Field(0)

    def to_fields(self) -> Dict[str, Any]:
        return {
            "samples": self.sample_size,
            "score": self.score,
            "satisfied": self.satisfied,
            "tolerating": self.tolerating,
            "frustrating": self.frustrating,
        }


class _ValueSource(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str = Field(..., description="Name of the metric")
    tags: MetricTags = Field(default_factory=MetricTags.empty, description="Tags of the metric")


class GaugeValueSource(_ValueSource):
    kind: Literal["gauge"] = "gauge"
    value: float


class CounterValueSource(_ValueSource):
    kind: Literal["counter"] = "counter"
    value: CounterValue
    report_set_items: bool = Field(True, description="Whether per-item documents are reported")
    report_item_percentages: bool = Field(True, description="Whether item documents carry a percent field")


class MeterValueSource(_ValueSource):
    kind: Literal["meter"] = "meter"
    value: MeterValue


class TimerValueSource(_ValueSource):
    kind: Literal["timer"] = "timer"
    value: TimerValue


class HistogramValueSource(_ValueSource):
    kind: Literal["histogram"] = "histogram"
    value: HistogramValue


class ApdexValueSource(_ValueSource):
    kind: Literal["apdex"] = "apdex"
    value: ApdexValue


ValueSource = Annotated[
    Union[
        GaugeValueSource,
        CounterValueSource,
        MeterValueSource,
        TimerValueSource,
        HistogramValueSource,
        ApdexValueSource,
    ],
    Field(discriminator="kind"),
]

VALUE_SOURCE_KINDS = ("gauge", "counter", "meter", "timer", "histogram", "apdex")
