"""Reporter settings loaded from the environment."""
import logging
import os
from datetime import timedelta
from typing import Optional

from dotenv import find_dotenv, load_dotenv
from pydantic import BaseModel, Field

from metrics_reporter.adapters.client.elasticsearch import ElasticsearchBulkClient
from metrics_reporter.adapters.payload.builder import BulkPayloadBuilder, NameFormatter
from metrics_reporter.core.reporter.elasticsearch import ElasticsearchReporter

logger = logging.getLogger(__name__)

ENV_PREFIX = "METRICS_REPORTER_"


class ReporterSettings(BaseModel):
    """Settings of an Elasticsearch reporter."""

    base_url: str = Field("http://localhost:9200", description="Base URL of the Elasticsearch cluster")
    index: str = Field("metrics", description="Index documents are written to")
    report_interval: float = Field(10.0, gt=0, description="Seconds between report runs")
    timeout: float = Field(10.0, gt=0, description="HTTP request timeout in seconds")
    verify_ssl: bool = Field(True, description="Whether to verify SSL certificates")
    username: Optional[str] = Field(None, description="Username for basic authentication")
    password: Optional[str] = Field(None, description="Password for basic authentication")
    api_key: Optional[str] = Field(None, description="Encoded API key")
    retries: int = Field(0, ge=0, description="Retries on connection errors and timeouts")
    reporter_name: Optional[str] = Field(None, description="Display name of the reporter")

    @classmethod
    def from_env(cls, prefix: str = ENV_PREFIX, env_file: Optional[str] = None) -> "ReporterSettings":
        """
        Load settings from environment variables.

        A ``.env`` file is loaded first; variables already set in the
        environment take precedence over it.

        Args:
            prefix: Prefix of the environment variables, e.g. METRICS_REPORTER_INDEX
            env_file: Optional path of the .env file. When omitted it is searched
                for from the current working directory upwards

        Returns:
            ReporterSettings: Validated settings
        """
        # Without an explicit path, look for .env from the working directory up
        load_dotenv(env_file or find_dotenv(usecwd=True))

        values = {}
        for field_name in cls.model_fields:
            env_value = os.environ.get(f"{prefix}{field_name.upper()}")
            if env_value is not None:
                values[field_name] = env_value

        return cls(**values)


def build_reporter(
    settings: ReporterSettings,
    metric_name_formatter: Optional[NameFormatter] = None
) -> ElasticsearchReporter:
    """
    Wire a bulk client, a payload builder and a reporter from settings.

    Args:
        settings: Reporter settings
        metric_name_formatter: Optional formatter for document names

    Returns:
        ElasticsearchReporter: Reporter ready to be scheduled
    """
    auth = None
    if settings.username:
        auth = (settings.username, settings.password or "")

    client = ElasticsearchBulkClient(
        base_url=settings.base_url,
        index=settings.index,
        timeout=settings.timeout,
        verify_ssl=settings.verify_ssl,
        auth=auth,
        api_key=settings.api_key,
        retries=settings.retries
    )

    logger.info(f"Reporting to {settings.base_url}/{settings.index} every {settings.report_interval} seconds")

    return ElasticsearchReporter(
        client=client,
        payload_builder=BulkPayloadBuilder(index=settings.index),
        report_interval=timedelta(seconds=settings.report_interval),
        name=settings.reporter_name,
        metric_name_formatter=metric_name_formatter
    )
