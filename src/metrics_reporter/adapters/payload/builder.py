"""Bulk payload builder for the Elasticsearch reporter."""
import json
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple

from metrics_reporter.core.models.documents import BulkDocument
from metrics_reporter.core.models.metrics import (
    CounterValueSource,
    MeterSetItem,
    MeterValueSource,
    MetricTags,
    SetItem,
)

NameFormatter = Callable[[str, str], str]

ITEM_TAG = "item"


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def to_bulk_body(documents: Iterable[BulkDocument], index: str) -> str:
    """
    Encode documents as an Elasticsearch bulk request body.

    Args:
        documents: Documents in the order they were packed
        index: Name of the target index

    Returns:
        str: NDJSON body with one action line and one source line per
            document, terminated by a newline. Empty string if no documents.
    """
    action = json.dumps({"index": {"_index": index}})
    lines = []
    for document in documents:
        lines.append(action)
        lines.append(json.dumps(document.to_source()))

    if not lines:
        return ""

    return "\n".join(lines) + "\n"


class BulkPayloadBuilder:
    """
    Accumulates the documents of one report cycle.

    The builder is not safe for concurrent writers; a reporter owns exactly
    one builder and drives it from a single report cycle at a time.
    """

    def __init__(self, index: str = "metrics", clock: Optional[Callable[[], datetime]] = None):
        """
        Initialize the payload builder.

        Args:
            index: Name of the index documents are written to
            clock: Optional callable returning the capture timestamp
        """
        self.index = index
        self._clock = clock or utc_now
        self._documents: List[BulkDocument] = []

    @property
    def payload(self) -> Tuple[BulkDocument, ...]:
        """Documents packed so far, in pack order."""
        return tuple(self._documents)

    def init(self) -> None:
        """Reset the builder at the start of a report cycle."""
        self.clear()

    def clear(self) -> None:
        """Drop every packed document."""
        self._documents = []

    def pack(self, name: str, value: Any, tags: MetricTags, document_type: str = "health") -> None:
        """
        Pack a single-value document that is not backed by a value source.

        Args:
            name: Document name, used as is
            value: Scalar or string value
            tags: Tags of the document
            document_type: Type recorded on the document
        """
        self._append(name, document_type, {"value": value}, tags)

    def pack_value_source(
        self,
        name_formatter: NameFormatter,
        context: str,
        value_source: Any,
        fields: Optional[Dict[str, Any]] = None
    ) -> None:
        """
        Pack the aggregate document of a value source.

        Args:
            name_formatter: Formats (context, metric name) into the document name
            context: Context the metric belongs to
            value_source: Value source to pack
            fields: Field set computed by the caller for multi-field kinds. When
                omitted the value source's own value is packed.
        """
        if fields is None:
            fields = self._default_fields(value_source)

        name = name_formatter(context, value_source.name)
        self._append(name, value_source.kind, fields, value_source.tags)

    def pack_counter_set_items(
        self,
        name_formatter: NameFormatter,
        context: str,
        value_source: CounterValueSource,
        item: SetItem
    ) -> None:
        """Pack the document of one counter set item."""
        fields: Dict[str, Any] = {"total": item.count}
        if value_source.report_item_percentages:
            fields["percent"] = item.percent

        name = name_formatter(context, value_source.name)
        tags = MetricTags.concat(value_source.tags, MetricTags.single(ITEM_TAG, item.item))
        self._append(name, value_source.kind, fields, tags)

    def pack_meter_set_items(
        self,
        name_formatter: NameFormatter,
        context: str,
        value_source: MeterValueSource,
        item: MeterSetItem
    ) -> None:
        """Pack the document of one meter set item."""
        fields = item.value.to_fields()
        fields["percent"] = item.percent

        name = name_formatter(context, value_source.name)
        tags = MetricTags.concat(value_source.tags, MetricTags.single(ITEM_TAG, item.item))
        self._append(name, value_source.kind, fields, tags)

    def serialize(self) -> str:
        """Render the current payload as a bulk request body."""
        return to_bulk_body(self._documents, self.index)

    def _default_fields(self, value_source: Any) -> Dict[str, Any]:
        if isinstance(value_source, CounterValueSource):
            return {"value": value_source.value.count}
        return {"value": value_source.value}

    def _append(self, name: str, document_type: str, fields: Dict[str, Any], tags: MetricTags) -> None:
        self._documents.append(
            BulkDocument(
                name=name,
                type=document_type,
                fields=fields,
                tags=tags,
                timestamp=self._clock()
            )
        )
