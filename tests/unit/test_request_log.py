"""Unit tests for the request log."""

from datetime import timedelta

import pytest

from market_radar.core.enums import LogEntryType
from market_radar.monitoring.request_log import LogEntry, RequestLog

URL = "https://pro-api.coinmarketcap.com/v1/cryptocurrency/listings/latest"


class TestRequestLogWrites:
    """Tests for appending entries."""

    def test_newest_first(self, request_log):
        request_log.log_request("GET", URL)
        request_log.log_response("GET", URL, 200, "OK", data_size=10, duration_ms=5.0)

        logs = request_log.get_logs()

        assert [e.type for e in logs] == [LogEntryType.RESPONSE, LogEntryType.REQUEST]
        assert logs[1].status_text == "pending"
        assert logs[0].data_size == 10

    def test_bounded_drops_oldest(self):
        log = RequestLog(max_entries=3)
        for i in range(5):
            log.log_request("GET", f"{URL}?page={i}")

        logs = log.get_logs()

        assert len(logs) == 3
        assert [e.url[-1] for e in logs] == ["4", "3", "2"]

    def test_invalid_capacity(self):
        with pytest.raises(ValueError):
            RequestLog(max_entries=0)

    def test_method_upper_cased(self, request_log):
        entry = request_log.log_request("get", URL)

        assert entry.method == "GET"

    def test_error_entry(self, request_log):
        entry = request_log.log_error("GET", URL, "timeout", duration_ms=30000.0)

        assert entry.type == LogEntryType.ERROR
        assert entry.error_message == "timeout"
        assert entry.status is None
        assert entry.status_text == "timeout"

    def test_timestamps_are_utc(self, request_log):
        entry = request_log.log_request("GET", URL)

        assert entry.timestamp.tzinfo is not None
        assert entry.timestamp.utcoffset() == timedelta(0)
        assert LogEntry(type=LogEntryType.REQUEST, method="GET", url=URL).timestamp.tzinfo is not None

    def test_entries_have_unique_ids(self, request_log):
        a = request_log.log_request("GET", URL)
        b = request_log.log_request("GET", URL)

        assert a.id != b.id

    def test_clear(self, request_log):
        request_log.log_request("GET", URL)

        request_log.clear()

        assert request_log.get_logs() == []

    def test_add_custom_entry(self, request_log):
        entry = LogEntry(type=LogEntryType.REQUEST, method="POST", url=URL)

        assert request_log.add(entry) is entry
        assert request_log.get_logs() == [entry]


class TestSanitizeHeaders:
    """Tests for credential masking."""

    def test_api_key_masked(self, request_log):
        entry = request_log.log_request(
            "GET", URL, headers={"X-CMC_PRO_API_KEY": "secret", "Accept": "application/json"}
        )

        assert entry.headers["X-CMC_PRO_API_KEY"] == "***"
        assert entry.headers["Accept"] == "application/json"

    def test_case_insensitive(self):
        headers = RequestLog.sanitize_headers({"authorization": "Bearer x", "API-KEY": "y"})

        assert headers == {"authorization": "***", "API-KEY": "***"}

    def test_input_headers_untouched(self):
        headers = {"X-CMC_PRO_API_KEY": "secret"}

        RequestLog.sanitize_headers(headers)

        assert headers["X-CMC_PRO_API_KEY"] == "secret"

    def test_empty(self):
        assert RequestLog.sanitize_headers(None) == {}


class TestSubscriptions:
    """Tests for listeners."""

    def test_listener_receives_entries(self, request_log):
        seen = []
        request_log.subscribe(seen.append)

        request_log.log_request("GET", URL)

        assert len(seen) == 1
        assert seen[0][0].type == LogEntryType.REQUEST

    def test_unsubscribe(self, request_log):
        seen = []
        unsubscribe = request_log.subscribe(seen.append)
        assert request_log.listener_count() == 1

        unsubscribe()
        request_log.log_request("GET", URL)

        assert seen == []
        assert request_log.listener_count() == 0

    def test_unsubscribe_twice_is_harmless(self, request_log):
        unsubscribe = request_log.subscribe(lambda entries: None)

        unsubscribe()
        unsubscribe()

        assert request_log.listener_count() == 0

    def test_failing_listener_does_not_break_logging(self, request_log):
        def broken(entries):
            raise RuntimeError("boom")

        seen = []
        request_log.subscribe(broken)
        request_log.subscribe(seen.append)

        request_log.log_request("GET", URL)

        assert len(request_log.get_logs()) == 1
        assert len(seen) == 1

    def test_clear_notifies(self, request_log):
        seen = []
        request_log.log_request("GET", URL)
        request_log.subscribe(seen.append)

        request_log.clear()

        assert seen == [[]]


class TestQueries:
    """Tests for filtered views and statistics."""

    @pytest.fixture
    def populated(self, request_log):
        request_log.log_request("GET", URL)
        request_log.log_response("GET", URL, 200, "OK")
        request_log.log_request("GET", URL)
        request_log.log_error("GET", URL, "Unauthorized", status=401, status_text="Unauthorized")
        request_log.log_request("POST", URL)
        request_log.log_response("POST", URL, 500, "Server Error")
        return request_log

    def test_filter_by_type(self, populated):
        assert len(populated.get_filtered_logs(entry_type=LogEntryType.REQUEST)) == 3

    def test_filter_by_method(self, populated):
        assert len(populated.get_filtered_logs(method="post")) == 2

    def test_filter_success(self, populated):
        success = populated.get_filtered_logs(status="success")

        assert len(success) == 1
        assert success[0].status == 200

    def test_filter_error(self, populated):
        errors = populated.get_filtered_logs(status="error")

        assert {e.status for e in errors} == {401, 500}

    def test_stats(self, populated):
        stats = populated.get_stats()

        assert stats["total"] == 6
        assert stats["requests"] == 3
        assert stats["responses"] == 2
        assert stats["errors"] == 1
        assert stats["success_rate"] == pytest.approx(66.7)

    def test_stats_when_empty(self, request_log):
        assert request_log.get_stats()["success_rate"] == 0.0
