"""Tests for the CloudWatch metrics client."""

from __future__ import annotations

from unittest.mock import MagicMock, patch

import pytest

from saathi.services import metrics as metrics_module
from saathi.services.metrics import ERROR_COUNT, LATENCY, REQUEST_COUNT, MetricsClient


def _client(enabled: bool = False) -> MetricsClient:
    with patch.dict("os.environ", {"METRICS_ENABLED": str(enabled).lower()}):
        return MetricsClient()


def _dims(datum: dict) -> dict[str, str]:
    return {d["Name"]: d["Value"] for d in datum["Dimensions"]}


class TestBuffering:
    def test_model_call_success(self):
        client = _client()
        client.record_success("anthropic", "chat_invoke", latency_ms=812.0)

        by_name = {m["MetricName"]: m for m in client._buffer}
        assert set(by_name) == {REQUEST_COUNT, LATENCY}
        assert _dims(by_name[REQUEST_COUNT]) == {"Backend": "anthropic", "Status": "success"}
        assert _dims(by_name[LATENCY]) == {"Backend": "anthropic", "Operation": "chat_invoke"}
        assert by_name[LATENCY]["Unit"] == "Milliseconds"

    def test_tool_failure_without_latency(self):
        client = _client()
        client.record_failure("tool", "complainService", error_type="PersistenceError")

        by_name = {m["MetricName"]: m for m in client._buffer}
        assert set(by_name) == {REQUEST_COUNT, ERROR_COUNT}
        assert _dims(by_name[REQUEST_COUNT])["Status"] == "failure"
        assert _dims(by_name[ERROR_COUNT]) == {"Backend": "tool", "ErrorType": "PersistenceError"}

    def test_failure_with_latency_also_records_latency(self):
        client = _client()
        client.record_failure(
            "anthropic", "chat_resume", error_type="TimeoutError", latency_ms=30_000.0,
        )
        assert {m["MetricName"] for m in client._buffer} == {REQUEST_COUNT, ERROR_COUNT, LATENCY}


class TestFlush:
    def test_disabled_client_drops_buffer_without_sending(self):
        client = _client(enabled=False)
        client._cw_client = MagicMock()
        client.record_success("tool", "getNearbyService", latency_ms=2.0)

        assert client.flush() == 0
        assert client._buffer == []
        client._cw_client.put_metric_data.assert_not_called()

    def test_enabled_client_sends_to_namespace(self):
        client = _client(enabled=True)
        client._cw_client = MagicMock()
        client.record_success("anthropic", "completion_invoke", latency_ms=400.0)

        assert client.flush() == 2
        kwargs = client._cw_client.put_metric_data.call_args[1]
        assert kwargs["Namespace"] == "DigitalSaathi"
        assert len(kwargs["MetricData"]) == 2

    def test_large_buffer_is_sent_in_chunks(self, monkeypatch):
        monkeypatch.setattr(metrics_module, "MAX_BATCH_SIZE", 3)
        client = _client(enabled=True)
        client._cw_client = MagicMock()
        for _ in range(4):
            client.record_success("tool", "getAgricultureData", latency_ms=1.0)

        assert client.flush() == 8
        sizes = [len(c[1]["MetricData"]) for c in client._cw_client.put_metric_data.call_args_list]
        assert sizes == [3, 3, 2]

    def test_cloudwatch_error_is_logged_not_raised(self):
        client = _client(enabled=True)
        client._cw_client = MagicMock()
        client._cw_client.put_metric_data.side_effect = RuntimeError("throttled")
        client.record_success("tool", "complainService", latency_ms=1.0)

        assert client.flush() == 0

    @pytest.mark.parametrize("enabled", [True, False])
    def test_empty_buffer_returns_zero(self, enabled):
        assert _client(enabled=enabled).flush() == 0
