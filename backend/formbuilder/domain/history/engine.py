"""Linear undo/redo history over full document snapshots."""
from __future__ import annotations
import copy
from typing import Generic, List, Optional, TypeVar

S = TypeVar("S")


class EditHistory(Generic[S]):
    """
    A single timeline of deep-copied snapshots plus a cursor.

    ``commit`` drops everything after the cursor before appending, so an edit
    made after an undo discards the redo future. ``undo``/``redo`` at either end
    of the timeline return None and leave the cursor alone.
    """

    def __init__(self) -> None:
        self._entries: List[S] = []
        self._index: int = -1

    def reset(self, snapshot: S) -> None:
        """Start a fresh timeline whose first entry is ``snapshot``."""
        self._entries = [copy.deepcopy(snapshot)]
        self._index = 0

    def commit(self, snapshot: S) -> None:
        self._entries = self._entries[: self._index + 1]
        self._entries.append(copy.deepcopy(snapshot))
        self._index = len(self._entries) - 1

    def undo(self) -> Optional[S]:
        if not self.can_undo:
            return None
        self._index -= 1
        return copy.deepcopy(self._entries[self._index])

    def redo(self) -> Optional[S]:
        if not self.can_redo:
            return None
        self._index += 1
        return copy.deepcopy(self._entries[self._index])

    def clear(self) -> None:
        self._entries = []
        self._index = -1

    @property
    def index(self) -> int:
        return self._index

    @property
    def can_undo(self) -> bool:
        return self._index > 0

    @property
    def can_redo(self) -> bool:
        return self._index < len(self._entries) - 1

    @property
    def current(self) -> Optional[S]:
        if self._index < 0:
            return None
        return copy.deepcopy(self._entries[self._index])

    def __len__(self) -> int:
        return len(self._entries)
