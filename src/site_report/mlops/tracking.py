"""
Langfuse tracking for the report pipeline.
One span per analyze / assemble call, tagged with the report id.
Tracking problems are logged and never interrupt the pipeline.
"""
import logging
import time
from typing import Optional, Dict, Any
from contextlib import contextmanager

from langfuse import Langfuse

from ..config import get_settings

logger = logging.getLogger(__name__)


def _get_langfuse() -> Optional[Langfuse]:
    settings = get_settings()
    if not settings.LANGFUSE_ENABLED:
        return None
    try:
        return Langfuse(
            public_key=settings.LANGFUSE_PUBLIC_KEY,
            secret_key=settings.LANGFUSE_SECRET_KEY,
            host=settings.LANGFUSE_HOST,
        )
    except Exception as e:
        logger.warning(f"Failed to initialize Langfuse: {e}")
        return None


class ReportTracker:
    """Handles Langfuse tracking for the pipeline."""

    def __init__(self):
        settings = get_settings()
        self.enabled = settings.LANGFUSE_ENABLED
        self.client = _get_langfuse()

        if self.client:
            logger.info(f"Langfuse tracking enabled: {settings.LANGFUSE_HOST}")
        elif self.enabled:
            logger.warning("Langfuse enabled but client failed to initialize")
            self.enabled = False
        else:
            logger.debug("Langfuse tracking disabled")

    def _sanitize_tags(self, tags: Dict[str, Any]) -> Dict[str, str]:
        """Ensure all tag values are strings."""
        return {k: str(v) for k, v in tags.items() if v is not None}

    @contextmanager
    def start_run(self, name: str, report_id: str, tags: Optional[Dict[str, Any]] = None):
        """
        Open a span for one pipeline step on one report.
        Yields the span (or None when tracking is off) for set_tags().
        """
        if not self.enabled or not self.client:
            yield None
            return

        metadata = {"report_id": report_id, "component": "pipeline", **self._sanitize_tags(tags or {})}
        try:
            span = self.client.start_span(name=f"{name}_{report_id}", metadata=metadata)
        except Exception as e:
            logger.warning(f"Failed to start span {name}: {e}")
            span = None

        start_time = time.time()
        outcome = "success"
        try:
            yield span
        except Exception as e:
            outcome = f"error: {e}"
            raise
        finally:
            if span is not None:
                try:
                    span.update(metadata={**metadata, "outcome": outcome, "latency_seconds": time.time() - start_time})
                    span.end()
                    self.client.flush()
                except Exception as e:
                    logger.warning(f"Failed to close span {name}: {e}")

    def set_tags(self, span, tags: Dict[str, Any]):
        """Attach tags to a span from start_run(); no-op for None."""
        if span is None:
            return
        try:
            span.update(metadata=self._sanitize_tags(tags))
        except Exception as e:
            logger.warning(f"Failed to set tags: {e}")
