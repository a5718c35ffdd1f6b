"""Selection state for a scrollable list of known length."""

from __future__ import annotations


class Selector:
    """Tracks the selected row of a list, wrapping around at either end."""

    def __init__(self) -> None:
        self.length = 0
        self.selected = 0

    def set_length(self, length: int) -> None:
        """Update the list length, resetting the selection if the list shrank."""
        if length < self.length:
            self.selected = 0
        self.length = length

    def _require_items(self) -> None:
        if self.length == 0:
            raise IndexError("cannot move the selection in an empty list")

    def top(self) -> None:
        self.selected = 0

    def bottom(self) -> None:
        self._require_items()
        self.selected = self.length - 1

    def next(self) -> None:
        """Select the following row, wrapping to the first."""
        self._require_items()
        self.selected = 0 if self.selected >= self.length - 1 else self.selected + 1

    def previous(self) -> None:
        """Select the preceding row, wrapping to the last."""
        self._require_items()
        self.selected = self.length - 1 if self.selected == 0 else self.selected - 1