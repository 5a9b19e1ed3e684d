from __future__ import annotations

from typing import Optional

from .types import ViewId


class ViewStateError(Exception):
    pass


class TransitionError(ViewStateError):
    def __init__(self, message: str, from_view: Optional[ViewId] = None, to_view: Optional[ViewId] = None) -> None:
        super().__init__(message)
        self.from_view = from_view
        self.to_view = to_view


class StorageError(ViewStateError):
    pass
