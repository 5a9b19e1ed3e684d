from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Protocol, Tuple

from .types import ViewId

TOP_PADDING_PX = 16


@dataclass(frozen=True)
class Size:
    width: int
    height: int


@dataclass(frozen=True)
class Viewport:
    """Visible area the surface is positioned against, in host coordinates."""

    x: float
    y: float
    width: float
    height: float
    zoom: float = 1.0


VIEW_SIZES: Dict[ViewId, Size] = {
    ViewId.FORM: Size(800, 720),
    ViewId.RESULTS: Size(800, 720),
    ViewId.COLLAPSED: Size(200, 400),
    ViewId.ISSUE_DETAILS: Size(360, 480),
    ViewId.OUT_OF_SCOPE_MODAL: Size(360, 240),
}


class PresentationSurface(Protocol):
    def size(self) -> Size:
        ...

    def resize(self, width: int, height: int) -> None:
        ...

    def reposition(self, x: float, y: float) -> None:
        ...

    def viewport(self) -> Viewport:
        ...


def top_center_position(viewport: Viewport, size: Size) -> Tuple[float, float]:
    zoom = viewport.zoom or 1.0
    width_in_viewport = size.width / zoom
    x = viewport.x + (viewport.width - width_in_viewport) / 2
    y = viewport.y + TOP_PADDING_PX / zoom
    return x, y


def centered_position(viewport: Viewport, size: Size) -> Tuple[float, float]:
    zoom = viewport.zoom or 1.0
    x = viewport.x + (viewport.width - size.width / zoom) / 2
    y = viewport.y + (viewport.height - size.height / zoom) / 2
    return x, y


class HeadlessSurface:
    """Surface without a window; keeps geometry and a log of calls."""

    def __init__(self, size: Size = VIEW_SIZES[ViewId.FORM], viewport: Viewport = Viewport(0, 0, 1440, 900)) -> None:
        self._size = size
        self._viewport = viewport
        self.position: Tuple[float, float] = centered_position(viewport, size)
        self.calls: List[Tuple[str, Tuple[float, float]]] = []

    def size(self) -> Size:
        return self._size

    def resize(self, width: int, height: int) -> None:
        self._size = Size(int(width), int(height))
        self.calls.append(("resize", (int(width), int(height))))

    def reposition(self, x: float, y: float) -> None:
        self.position = (x, y)
        self.calls.append(("reposition", (x, y)))

    def viewport(self) -> Viewport:
        return self._viewport
