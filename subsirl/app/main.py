from __future__ import annotations

import asyncio
import queue
import signal
import sys
import threading
import traceback

from subsirl.app.config import resolve_args
from subsirl.app.diagnostics import hint_for_exception, summarize_exception
from subsirl.app.logging_setup import setup_app_logger
from subsirl.app.runtime import LanguageSelection, _drain_subtitle_bus, run_session
from subsirl.app.state import RuntimeStateTracker
from subsirl.audio.mic import SoundDeviceMicSource
from subsirl.languages import language_pair
from subsirl.ui.bridge import SubtitleBus
from subsirl.ui.sink import SubtitleSink


def _report_failure(detail: str) -> None:
    summary = summarize_exception(detail)
    print(f"subsirl stopped: {summary}", file=sys.stderr)
    print(f"Hint: {hint_for_exception(summary)}", file=sys.stderr)


_QUIT_JOIN_SEC = 5.0


def _stop_worker(worker: threading.Thread, stop_event: threading.Event, timeout: float) -> bool:
    """Signal the session worker and wait briefly. Returns True when it has exited."""
    stop_event.set()
    worker.join(timeout=max(0.0, timeout))
    return not worker.is_alive()


def _run_headless(args, languages: LanguageSelection, logger, state: RuntimeStateTracker) -> int:
    stop_event = threading.Event()
    sink = SubtitleSink()
    signal.signal(signal.SIGINT, lambda *_: stop_event.set())

    state.set_starting()
    try:
        state.set_running()
        asyncio.run(
            run_session(args, sink, stop_event=stop_event, languages=languages, logger=logger)
        )
    except Exception:
        detail = traceback.format_exc()
        logger.exception("session_crash")
        state.set_error(detail)
        _report_failure(detail)
        return 1
    state.set_stopped()
    if sink.text:
        print()
        print(sink.text)
    return 0


def _run_window(args, languages: LanguageSelection, logger, state: RuntimeStateTracker) -> int:
    from PyQt6 import QtCore, QtWidgets
    from subsirl.ui.view_qt import SubtitleWindow, ViewConfig

    app = QtWidgets.QApplication(sys.argv)
    window = SubtitleWindow(ViewConfig(font_size=max(10, int(args.font_size))))
    sink = SubtitleSink(on_scroll=window.show_text)
    bus = SubtitleBus()
    stop_event = threading.Event()
    err_q: "queue.Queue[str]" = queue.Queue(maxsize=8)

    def _worker_entry() -> None:
        try:
            asyncio.run(
                run_session(args, bus, stop_event=stop_event, languages=languages, logger=logger)
            )
        except Exception:
            logger.exception("worker_crash")
            try:
                err_q.put_nowait(traceback.format_exc())
            except queue.Full:
                pass

    worker = threading.Thread(target=_worker_entry, name="subsirl-session-worker", daemon=True)
    state.set_starting()
    worker.start()
    state.set_running()

    timer = QtCore.QTimer()

    def _on_tick() -> None:
        _drain_subtitle_bus(bus, sink, max(1, int(args.max_updates_per_tick)))
        try:
            err = err_q.get_nowait()
        except queue.Empty:
            if not worker.is_alive() and state.active:
                state.set_stopped()
            return
        state.set_error(err)
        _report_failure(err)
        window.setWindowTitle(f"subsirl - {summarize_exception(err, max_len=80)}")

    timer.timeout.connect(_on_tick)
    timer.start(max(10, int(args.poll_ms)))

    def _on_about_to_quit() -> None:
        logger.info("app_quit")
        state.set_stopping()
        window.hide()
        if not _stop_worker(worker, stop_event, min(_QUIT_JOIN_SEC, float(args.stage_timeout_sec))):
            logger.warning("worker_still_running", extra={"join_sec": _QUIT_JOIN_SEC})
        _drain_subtitle_bus(bus, sink, sys.maxsize)
        state.set_stopped()

    window.escape_requested.connect(app.quit)
    app.aboutToQuit.connect(_on_about_to_quit)
    signal.signal(signal.SIGINT, lambda *_: app.quit())

    window.show()
    return app.exec()


def main(argv: list[str] | None = None) -> int:
    args = resolve_args(argv)
    logger, _log_dir, log_path = setup_app_logger(debug=bool(args.debug))
    logger.info("app_start", extra={"config_path": str(getattr(args, "config", "")), "argv": argv or []})

    if args.list_devices:
        print(SoundDeviceMicSource.list_devices())
        return 0

    languages = LanguageSelection(language_pair(args.source_language, args.target_language))
    state = RuntimeStateTracker()
    print(f"Logs: {log_path}")
    if args.headless:
        return _run_headless(args, languages, logger, state)
    return _run_window(args, languages, logger, state)


if __name__ == "__main__":
    raise SystemExit(main())
