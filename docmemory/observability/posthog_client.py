# docmemory/observability/posthog_client.py

"""
Product events for the document memory pipelines.

The request id is the distinct id of every event. Delete and ingestion
failures never reach the caller as errors, so ``system_error`` events are
the only place they show up outside the logs.
"""

import os
import logging
from typing import Any, Optional

from posthog import Posthog


logger = logging.getLogger(__name__)

DEFAULT_HOST = "https://app.posthog.com"


class PostHogClient:
    """
    Event sink for ingestion, query, summarize and error events.

    Without an API key every call is a no-op. Capture failures are logged
    and dropped.
    """

    def __init__(self, api_key: Optional[str] = None, host: Optional[str] = None):

        api_key = api_key or os.getenv("POSTHOG_API_KEY")
        host = host or os.getenv("POSTHOG_HOST", DEFAULT_HOST)

        self._client: Optional[Posthog] = None

        if not api_key:
            logger.info("posthog_disabled", extra={"reason": "no api key"})
            return

        try:
            self._client = Posthog(
                project_api_key=api_key,
                host=host,
                timeout=5,
                flush_interval=1,
            )
        except Exception as e:
            logger.error("posthog_init_failed", extra={"host": host, "error": str(e)})
            return

        logger.info("posthog_enabled", extra={"host": host})

    @property
    def enabled(self) -> bool:
        return self._client is not None

    def capture(self, distinct_id: str, event: str, **properties: Any):

        if self._client is None:
            return

        try:
            self._client.capture(
                distinct_id=distinct_id,
                event=event,
                properties=properties,
            )
        except Exception as e:
            logger.warning(
                "posthog_capture_failed",
                extra={"event": event, "error": str(e)},
            )

    # ==========================================================
    # PIPELINE EVENTS
    # ==========================================================

    def track_document_ingested(self, distinct_id: str, url: str, file_name: str, records: int, latency: float):
        self.capture(
            distinct_id,
            "document_ingested",
            url=url,
            file_name=file_name,
            records=records,
            latency_seconds=latency,
        )

    def track_query(self, distinct_id: str, collection: str, limit: int, latency: float):
        self.capture(
            distinct_id,
            "query_completed",
            collection=collection,
            limit=limit,
            latency_seconds=latency,
        )

    def track_summarize(self, distinct_id: str, chunks: int, completions: int, latency: float):
        self.capture(
            distinct_id,
            "summarize_completed",
            chunks=chunks,
            completions=completions,
            latency_seconds=latency,
        )

    def track_error(self, distinct_id: str, error_type: str, error_message: str, endpoint: str):
        """Failure that was logged and converted, or a 5xx response."""
        self.capture(
            distinct_id,
            "system_error",
            error_type=error_type,
            error_message=error_message,
            endpoint=endpoint,
        )


posthog_client = PostHogClient()
