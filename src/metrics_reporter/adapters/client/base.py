"""Base interface for bulk clients."""
from abc import ABC, abstractmethod
from typing import Any, Dict, Sequence

from metrics_reporter.core.models.documents import BulkDocument


class BulkClient(ABC):
    """Base interface for all bulk clients."""

    @abstractmethod
    async def write(self, documents: Sequence[BulkDocument]) -> bool:
        """
        Serialize documents into one bulk request and transmit it.

        Args:
            documents: Documents in the order they were packed

        Returns:
            bool: True if the backend accepted every document, False otherwise.
                Delivery failures are reported through the return value, not
                raised.
        """
        pass

    @abstractmethod
    async def health_check(self) -> Dict[str, Any]:
        """
        Check the health of the bulk client's backend.

        Returns:
            Dict[str, Any]: Health check results
                {
                    "status": str,  # "healthy", "degraded", or "unhealthy"
                    "details": Dict[str, Any]  # Additional details about the health check
                }
        """
        pass
