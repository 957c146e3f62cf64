"""Order-preserving, duplicate-free set of selected serial numbers."""

from __future__ import annotations

from typing import Dict, Iterable, Iterator, List


class SelectionSet:
    """
    Serial numbers chosen for the pending dispatch.

    Insertion order is kept for display and for the dispatch number's
    first/last rule. The set does not know about stock: callers check
    membership against the current snapshot before adding.
    """

    def __init__(self, serials: Iterable[str] = ()) -> None:
        # dict keys give ordered, unique membership
        self._serials: Dict[str, None] = dict.fromkeys(serials)

    def add(self, serial: str) -> bool:
        """Add a serial. Returns False if it was already present."""
        if serial in self._serials:
            return False
        self._serials[serial] = None
        return True

    def remove(self, serial: str) -> bool:
        """Remove a serial. Returns False if it was not present."""
        if serial not in self._serials:
            return False
        del self._serials[serial]
        return True

    def contains(self, serial: str) -> bool:
        return serial in self._serials

    def toggle(self, serial: str) -> bool:
        """Add if absent, remove if present. Returns True if now selected."""
        if self.remove(serial):
            return False
        self.add(serial)
        return True

    def merge(self, serials: Iterable[str]) -> int:
        """
        Union the given serials into the set, keeping existing order first.

        Returns:
            Number of serials that were new
        """
        added = 0
        for serial in serials:
            if self.add(serial):
                added += 1
        return added

    def clear(self) -> None:
        self._serials.clear()

    def values(self) -> List[str]:
        """Selected serials in insertion order."""
        return list(self._serials)

    def __contains__(self, serial: object) -> bool:
        return serial in self._serials

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._serials))

    def __len__(self) -> int:
        return len(self._serials)

    def __bool__(self) -> bool:
        return bool(self._serials)

    def __repr__(self) -> str:
        return f"SelectionSet({self.values()!r})"
