"""Unit tests for Langfuse tracking."""

import pytest
from unittest.mock import patch, MagicMock


class TestReportTracker:
    """Tests for ReportTracker class."""

    @patch('site_report.mlops.tracking._get_langfuse')
    @patch('site_report.mlops.tracking.get_settings')
    def test_tracker_disabled_when_langfuse_disabled(self, mock_settings, mock_get_langfuse):
        """Tracker should be disabled when LANGFUSE_ENABLED is False."""
        mock_settings.return_value.LANGFUSE_ENABLED = False
        mock_get_langfuse.return_value = None

        from site_report.mlops.tracking import ReportTracker
        tracker = ReportTracker()

        assert tracker.enabled is False

    @patch('site_report.mlops.tracking._get_langfuse')
    @patch('site_report.mlops.tracking.get_settings')
    def test_start_run_yields_none_when_disabled(self, mock_settings, mock_get_langfuse):
        """start_run should yield None when disabled, and set_tags accepts it."""
        mock_settings.return_value.LANGFUSE_ENABLED = False
        mock_get_langfuse.return_value = None

        from site_report.mlops.tracking import ReportTracker
        tracker = ReportTracker()

        with tracker.start_run("analyze", "r-1") as span:
            assert span is None
            tracker.set_tags(span, {"pages": 3})

    @patch('site_report.mlops.tracking._get_langfuse')
    @patch('site_report.mlops.tracking.get_settings')
    def test_sanitize_tags(self, mock_settings, mock_get_langfuse):
        """Tags should be sanitized to strings."""
        mock_settings.return_value.LANGFUSE_ENABLED = False
        mock_get_langfuse.return_value = None

        from site_report.mlops.tracking import ReportTracker
        tracker = ReportTracker()

        sanitized = tracker._sanitize_tags({"string": "value", "int": 42, "none": None})

        assert sanitized == {"string": "value", "int": "42"}

    @patch('site_report.mlops.tracking._get_langfuse')
    @patch('site_report.mlops.tracking.get_settings')
    def test_span_closed_on_success(self, mock_settings, mock_get_langfuse):
        """An enabled tracker opens one span per run and ends it."""
        mock_settings.return_value.LANGFUSE_ENABLED = True
        mock_settings.return_value.LANGFUSE_HOST = "http://localhost"
        client = MagicMock()
        span = MagicMock()
        client.start_span.return_value = span
        mock_get_langfuse.return_value = client

        from site_report.mlops.tracking import ReportTracker
        tracker = ReportTracker()

        with tracker.start_run("assemble", "r-9", tags={"photos": 2}) as yielded:
            assert yielded is span
            tracker.set_tags(yielded, {"pages": 3})

        client.start_span.assert_called_once()
        assert client.start_span.call_args.kwargs["metadata"]["report_id"] == "r-9"
        span.end.assert_called_once()
        final_metadata = span.update.call_args.kwargs["metadata"]
        assert final_metadata["outcome"] == "success"

    @patch('site_report.mlops.tracking._get_langfuse')
    @patch('site_report.mlops.tracking.get_settings')
    def test_span_records_error_and_reraises(self, mock_settings, mock_get_langfuse):
        """Errors inside a run propagate; the span is still ended once."""
        mock_settings.return_value.LANGFUSE_ENABLED = True
        client = MagicMock()
        span = MagicMock()
        client.start_span.return_value = span
        mock_get_langfuse.return_value = client

        from site_report.mlops.tracking import ReportTracker
        tracker = ReportTracker()

        with pytest.raises(RuntimeError):
            with tracker.start_run("analyze", "r-1"):
                raise RuntimeError("llm down")

        span.end.assert_called_once()
        assert span.update.call_args.kwargs["metadata"]["outcome"].startswith("error")

    @patch('site_report.mlops.tracking._get_langfuse')
    @patch('site_report.mlops.tracking.get_settings')
    def test_tracking_failures_do_not_interrupt(self, mock_settings, mock_get_langfuse):
        """A broken Langfuse client must not break the pipeline step."""
        mock_settings.return_value.LANGFUSE_ENABLED = True
        client = MagicMock()
        client.start_span.side_effect = ConnectionError("no network")
        mock_get_langfuse.return_value = client

        from site_report.mlops.tracking import ReportTracker
        tracker = ReportTracker()

        with tracker.start_run("analyze", "r-1") as span:
            assert span is None
