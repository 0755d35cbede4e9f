"""Elasticsearch implementation of the bulk client."""
import asyncio
import logging
from functools import partial
from typing import Any, Callable, Dict, Optional, Sequence, Tuple

import requests
from requests.exceptions import RequestException

from metrics_reporter.adapters.client.base import BulkClient
from metrics_reporter.adapters.payload.builder import to_bulk_body
from metrics_reporter.core.models.documents import BulkDocument
from metrics_reporter.utils.performance import with_retry

logger = logging.getLogger(__name__)

NDJSON_CONTENT_TYPE = "application/x-ndjson"


class ElasticsearchBulkClient(BulkClient):
    """Bulk client that writes documents through the Elasticsearch _bulk API."""

    def __init__(
        self,
        base_url: str,
        index: str = "metrics",
        headers: Optional[Dict[str, str]] = None,
        timeout: float = 10,
        verify_ssl: bool = True,
        auth: Optional[Tuple[str, str]] = None,
        api_key: Optional[str] = None,
        retries: int = 0,
        retry_delay: float = 1.0
    ):
        """
        Initialize the Elasticsearch bulk client.

        Args:
            base_url: Base URL of the Elasticsearch cluster
            index: Name of the index documents are written to
            headers: Optional HTTP headers to include in requests
            timeout: Request timeout in seconds
            verify_ssl: Whether to verify SSL certificates
            auth: Optional (username, password) for basic authentication
            api_key: Optional encoded API key, sent as an ApiKey authorization header
            retries: Number of retries on connection errors and timeouts
            retry_delay: Initial delay between retries in seconds
        """
        self.base_url = base_url.rstrip("/")
        self.index = index
        self.headers = {"Content-Type": NDJSON_CONTENT_TYPE}
        self.headers.update(headers or {})
        if api_key:
            self.headers["Authorization"] = f"ApiKey {api_key}"
        self.timeout = timeout
        self.verify_ssl = verify_ssl
        self.auth = auth
        self.retries = retries
        self.retry_delay = retry_delay

    @property
    def bulk_url(self) -> str:
        return f"{self.base_url}/_bulk"

    async def write(self, documents: Sequence[BulkDocument]) -> bool:
        """
        Write documents to Elasticsearch in one bulk request.

        Args:
            documents: Documents in the order they were packed

        Returns:
            bool: True if every document was indexed, False otherwise
        """
        if not documents:
            logger.debug("No documents to write, skipping bulk request")
            return True

        body = to_bulk_body(documents, self.index)

        try:
            response = await with_retry(
                self._send,
                requests.post,
                self.bulk_url,
                data=body.encode("utf-8"),
                retries=self.retries,
                delay=self.retry_delay,
                exceptions=(requests.ConnectionError, requests.Timeout)
            )

            # Check response
            response.raise_for_status()

            result = response.json()
            if not isinstance(result, dict):
                logger.error(f"Unexpected bulk response from Elasticsearch: {result!r}")
                return False

            if result.get("errors"):
                failed = [
                    item for item in result.get("items", [])
                    if item.get("index", {}).get("error")
                ]
                logger.error(f"Elasticsearch rejected {len(failed)} of {len(documents)} documents")
                return False

            logger.info(f"Wrote {len(documents)} documents to Elasticsearch index {self.index}")
            return True
        except RequestException as e:
            logger.error(f"Error writing documents to Elasticsearch: {e}")
            return False
        except ValueError as e:
            logger.error(f"Invalid response from Elasticsearch bulk API: {e}")
            return False

    async def health_check(self) -> Dict[str, Any]:
        """
        Check the health of the Elasticsearch cluster.

        Returns:
            Dict[str, Any]: Health check results
        """
        try:
            response = await self._send(requests.get, f"{self.base_url}/_cluster/health")

            if response.status_code >= 400:
                return {
                    "status": "degraded",
                    "details": {
                        "base_url": self.base_url,
                        "status_code": response.status_code,
                        "message": f"Cluster returned status code {response.status_code}"
                    }
                }

            cluster_status = response.json().get("status")
            return {
                "status": "degraded" if cluster_status == "red" else "healthy",
                "details": {
                    "base_url": self.base_url,
                    "index": self.index,
                    "cluster_status": cluster_status
                }
            }
        except Exception as e:
            logger.error(f"Health check failed: {e}")
            return {
                "status": "unhealthy",
                "details": {
                    "base_url": self.base_url,
                    "error": str(e)
                }
            }

    async def _send(self, method: Callable[..., requests.Response], url: str, **kwargs: Any) -> requests.Response:
        """Run a blocking requests call in the default executor."""
        loop = asyncio.get_running_loop()
        call = partial(
            method,
            url,
            headers=self.headers,
            timeout=self.timeout,
            verify=self.verify_ssl,
            auth=self.auth,
            **kwargs
        )
        return await loop.run_in_executor(None, call)
