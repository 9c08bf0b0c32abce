"""Tests for UTC helpers and the cooperative cancellation token."""

from datetime import date, datetime, timedelta, timezone
import threading

from booka.core.cancellation import CancellationToken
from booka.core.time_utils import ensure_utc, now_utc, utc_day_window


class TestTimeUtils:
    def test_now_is_aware(self):
        assert now_utc().tzinfo is not None

    def test_naive_is_taken_as_utc(self):
        value = ensure_utc(datetime(2025, 3, 10, 9, 0))
        assert value == datetime(2025, 3, 10, 9, 0, tzinfo=timezone.utc)

    def test_other_offsets_are_converted(self):
        lagos = timezone(timedelta(hours=1))
        value = ensure_utc(datetime(2025, 3, 10, 10, 0, tzinfo=lagos))
        assert value.hour == 9
        assert value.utcoffset() == timedelta(0)

    def test_day_window_is_half_open(self):
        start, end = utc_day_window(date(2025, 3, 10))
        assert start == datetime(2025, 3, 10, tzinfo=timezone.utc)
        assert end == datetime(2025, 3, 11, tzinfo=timezone.utc)


class TestCancellationToken:
    def test_starts_active(self):
        token = CancellationToken()
        assert not token.cancelled
        assert token.reason is None

    def test_first_reason_wins(self):
        token = CancellationToken()
        token.cancel("SIGTERM")
        token.cancel("SIGINT")
        assert token.cancelled
        assert token.reason == "SIGTERM"

    def test_zero_wait_reports_state(self):
        token = CancellationToken()
        assert token.wait(0) is False
        token.cancel()
        assert token.wait(0) is True

    def test_wait_returns_early_on_cancel(self):
        token = CancellationToken()
        timer = threading.Timer(0.05, token.cancel)
        timer.start()
        try:
            assert token.wait(5) is True
        finally:
            timer.cancel()
