from __future__ import annotations

from dataclasses import dataclass

try:
    from PyQt6 import QtCore, QtGui, QtWidgets
    _PYQT_IMPORT_ERROR: ModuleNotFoundError | None = None
except ModuleNotFoundError as e:  # pragma: no cover - import guard path
    QtCore = None  # type: ignore[assignment]
    QtGui = None  # type: ignore[assignment]
    QtWidgets = None  # type: ignore[assignment]
    _PYQT_IMPORT_ERROR = e


@dataclass
class ViewConfig:
    font_size: int = 28
    padding_px: int = 24
    bg_opacity: int = 85


def render_text_to_html(text: str, cfg: ViewConfig) -> str:
    body = (text or "").replace("&", "&amp;").replace("<", "&lt;").replace(">", "&gt;")
    return f"<div style='font-size:{cfg.font_size}px; line-height:150%;'>{body}</div>"


if QtWidgets is not None:
    class SubtitleWindow(QtWidgets.QWidget):
        escape_requested = QtCore.pyqtSignal()
        """
        Read-only subtitle view pinned to the newest text.

        Hotkeys:
          - + / - : font size up/down
          - ESC : quit
        """

        def __init__(self, cfg: ViewConfig | None = None):
            super().__init__()
            self.cfg = cfg or ViewConfig()
            self._text = ""
            self.setWindowTitle("subsirl")

            alpha = max(0, min(255, int(round((self.cfg.bg_opacity / 100.0) * 255.0))))
            self.view = QtWidgets.QTextBrowser(self)
            self.view.setReadOnly(True)
            self.view.setOpenExternalLinks(False)
            self.view.setFocusPolicy(QtCore.Qt.FocusPolicy.NoFocus)
            self.view.setStyleSheet(
                f"""
                QTextBrowser {{
                    background-color: rgba(0, 0, 0, {alpha});
                    border: none;
                    color: white;
                }}
                """
            )
            self.view.setVerticalScrollBarPolicy(QtCore.Qt.ScrollBarPolicy.ScrollBarAlwaysOff)

            layout = QtWidgets.QVBoxLayout(self)
            layout.setContentsMargins(
                self.cfg.padding_px, self.cfg.padding_px, self.cfg.padding_px, self.cfg.padding_px
            )
            layout.addWidget(self.view)
            self.resize(900, 300)

        def show_text(self, text: str) -> None:
            self._text = text
            self._refresh()

        def _refresh(self) -> None:
            self.view.setHtml(render_text_to_html(self._text, self.cfg))
            # Always keep latest subtitle visible even if user scrolled up previously.
            bar = self.view.verticalScrollBar()
            bar.setValue(bar.maximum())

        def keyPressEvent(self, ev: QtGui.QKeyEvent) -> None:
            key = ev.key()
            if key == QtCore.Qt.Key.Key_Escape:
                self.escape_requested.emit()
                return
            if key in (QtCore.Qt.Key.Key_Plus, QtCore.Qt.Key.Key_Equal):
                self.cfg.font_size += 2
                self._refresh()
                return
            if key in (QtCore.Qt.Key.Key_Minus, QtCore.Qt.Key.Key_Underscore):
                self.cfg.font_size = max(12, self.cfg.font_size - 2)
                self._refresh()
                return
            super().keyPressEvent(ev)
else:
    class SubtitleWindow:
        def __init__(self, cfg: ViewConfig | None = None) -> None:
            del cfg
            raise ModuleNotFoundError(
                "PyQt6 is required for SubtitleWindow. Install with: python -m pip install PyQt6"
            ) from _PYQT_IMPORT_ERROR
