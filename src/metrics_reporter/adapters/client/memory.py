"""In-memory implementation of the bulk client for testing and development."""
import logging
from typing import Any, Dict, List, Sequence

from metrics_reporter.adapters.client.base import BulkClient
from metrics_reporter.adapters.payload.builder import to_bulk_body
from metrics_reporter.core.models.documents import BulkDocument

logger = logging.getLogger(__name__)


class InMemoryBulkClient(BulkClient):
    """Bulk client that records every write in memory."""

    def __init__(self, index: str = "metrics", succeed: bool = True):
        """
        Initialize the in-memory bulk client.

        Args:
            index: Index name used when rendering recorded bodies
            succeed: Result returned by every write, to simulate delivery failures
        """
        self.index = index
        self.succeed = succeed
        self.writes: List[List[BulkDocument]] = []
        self.bodies: List[str] = []

    @property
    def documents(self) -> List[BulkDocument]:
        """Every document written so far, across all writes."""
        return [document for write in self.writes for document in write]

    async def write(self, documents: Sequence[BulkDocument]) -> bool:
        self.writes.append(list(documents))
        self.bodies.append(to_bulk_body(documents, self.index))

        if self.succeed:
            logger.info(f"Recorded {len(documents)} documents in memory")
        else:
            logger.error(f"Simulated failure writing {len(documents)} documents")
        return self.succeed

    async def health_check(self) -> Dict[str, Any]:
        return {
            "status": "healthy",
            "details": {
                "writes": len(self.writes)
            }
        }
