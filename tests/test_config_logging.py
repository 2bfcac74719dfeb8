import json
import logging

from kiosk.config import Settings
from kiosk.logging import JsonFormatter, SessionIdFilter, clear_session_id, set_session_id


def test_settings_defaults(monkeypatch):
    for key in ("KIOSK_INACTIVITY_SECONDS", "KIOSK_AUTO_SUBMIT_COUNTDOWN", "KIOSK_STORAGE_BACKEND"):
        monkeypatch.delenv(key, raising=False)
    s = Settings.from_env()
    assert s.timings.inactivity_time == 30.0
    assert s.timings.auto_submit_countdown == 5
    assert s.timings.sync_interval == 900.0
    assert s.storage_backend == "local"
    assert s.queue_key == "surveySubmissions.json"


def test_settings_read_env_and_ignore_garbage(monkeypatch):
    monkeypatch.setenv("KIOSK_INACTIVITY_SECONDS", "60")
    monkeypatch.setenv("KIOSK_AUTO_SUBMIT_COUNTDOWN", "ten")
    monkeypatch.setenv("CORS_ORIGINS", "http://a, http://b ,")
    s = Settings.from_env()
    assert s.timings.inactivity_time == 60.0
    assert s.timings.auto_submit_countdown == 5
    assert s.cors_origins == ["http://a", "http://b"]


def test_json_formatter_carries_session_id_and_extras():
    record = logging.LogRecord("kiosk.test", logging.INFO, __file__, 1, "queued %s", ("abc",), None)
    record.queue_size = 3
    set_session_id("session-1")
    try:
        SessionIdFilter().filter(record)
        payload = json.loads(JsonFormatter().format(record))
    finally:
        clear_session_id()
    assert payload["msg"] == "queued abc"
    assert payload["session_id"] == "session-1"
    assert payload["queue_size"] == 3
