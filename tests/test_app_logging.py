from __future__ import annotations

import json
import logging
from pathlib import Path

from subsirl.app import config as app_config
from subsirl.app.logging_setup import log_event, setup_app_logger


def test_setup_app_logger_writes_json_line(tmp_path: Path, monkeypatch) -> None:
    monkeypatch.setattr(app_config, "user_config_dir", lambda appname, appauthor=None: str(tmp_path))
    logger, log_dir, log_path = setup_app_logger("subsirl.test")

    log_event(logger, logging.INFO, "utterance_translated", seq=7, chars=12)
    for h in logger.handlers:
        h.flush()

    assert log_dir.exists()
    assert log_path.exists()
    lines = [ln for ln in log_path.read_text(encoding="utf-8").splitlines() if ln.strip()]
    assert lines
    payload = json.loads(lines[-1])
    assert payload["message"] == "utterance_translated"
    assert payload["seq"] == 7
    assert payload["chars"] == 12
    assert payload["level"] == "INFO"
    assert payload["logger"] == "subsirl.test"

    for h in logger.handlers:
        h.close()
    logging.getLogger("subsirl.test").handlers.clear()


def test_setup_app_logger_debug_level(tmp_path: Path, monkeypatch) -> None:
    monkeypatch.setattr(app_config, "user_config_dir", lambda appname, appauthor=None: str(tmp_path))
    logger, _, _ = setup_app_logger("subsirl.test.debug", debug=True)
    assert logger.level == logging.DEBUG
    assert logger.propagate is False
    for h in logger.handlers:
        h.close()
    logging.getLogger("subsirl.test.debug").handlers.clear()


def test_log_event_without_logger_is_noop() -> None:
    log_event(None, logging.INFO, "ignored", seq=1)
