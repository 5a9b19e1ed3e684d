from __future__ import annotations

from PyQt6 import QtWidgets

from view_state.surface import Size, Viewport


class QtSurface:
    """Presentation surface backed by a top-level Qt widget."""

    def __init__(self, window: QtWidgets.QWidget) -> None:
        self._window = window

    @property
    def window(self) -> QtWidgets.QWidget:
        return self._window

    def size(self) -> Size:
        current = self._window.size()
        return Size(current.width(), current.height())

    def resize(self, width: int, height: int) -> None:
        self._window.resize(int(width), int(height))

    def reposition(self, x: float, y: float) -> None:
        self._window.move(int(round(x)), int(round(y)))

    def viewport(self) -> Viewport:
        screen = self._window.screen() or QtWidgets.QApplication.primaryScreen()
        if screen is None:
            current = self._window.size()
            return Viewport(0, 0, current.width(), current.height())
        area = screen.availableGeometry()
        return Viewport(area.x(), area.y(), area.width(), area.height())
