from datetime import datetime, timedelta, timezone

from schedule import LastRunMarker, hours_since, is_due

NOW = datetime(2026, 10, 19, 12, 0, tzinfo=timezone.utc)


def test_is_due_after_interval() -> None:
    assert is_due(NOW, NOW - timedelta(hours=48))
    assert is_due(NOW, NOW - timedelta(hours=72))
    assert not is_due(NOW, NOW - timedelta(hours=47, minutes=59))


def test_is_due_without_last_run_is_standby() -> None:
    assert not is_due(NOW, None)


def test_is_due_custom_interval_and_naive_datetimes() -> None:
    naive_last = datetime(2026, 10, 19, 6, 0)
    assert is_due(NOW, naive_last, interval_hours=6)
    assert not is_due(NOW, naive_last, interval_hours=7)
    assert hours_since(NOW, naive_last) == 6.0


def test_marker_round_trip(tmp_path) -> None:
    marker = LastRunMarker(tmp_path / "state" / "last_run")
    assert marker.read() is None

    stored = marker.write(NOW)

    assert stored == "2026-10-19T12:00:00+00:00"
    assert marker.read() == NOW


def test_marker_accepts_zulu_suffix(tmp_path) -> None:
    path = tmp_path / "last_run"
    path.write_text("2026-10-17T08:00:00.000Z")
    assert LastRunMarker(path).read() == datetime(2026, 10, 17, 8, 0, tzinfo=timezone.utc)


def test_marker_invalid_content_is_ignored(tmp_path, caplog) -> None:
    path = tmp_path / "last_run"
    path.write_text("yesterday-ish")
    assert LastRunMarker(path).read() is None
    assert "Last-run marker invalid" in caplog.text
