# pgboss_dashboard/client/selection.py
from typing import Iterable, Set


class SelectionSet:
    """
    Job ids picked for a bulk action.

    Ids may come from any page of the current queue; only ``select_all`` and
    ``deselect_all`` are limited to the ids currently on screen.
    """

    def __init__(self):
        self._ids: Set[str] = set()
        self.mode = False

    def __contains__(self, job_id: str) -> bool:
        return job_id in self._ids

    def __len__(self) -> int:
        return len(self._ids)

    @property
    def ids(self) -> Set[str]:
        return set(self._ids)

    def size(self) -> int:
        return len(self._ids)

    def toggle(self, job_id: str) -> bool:
        """Flip one id; returns whether it is now selected."""
        if job_id in self._ids:
            self._ids.discard(job_id)
            return False
        self._ids.add(job_id)
        return True

    def select_all(self, visible_ids: Iterable[str]) -> None:
        self._ids.update(visible_ids)

    def deselect_all(self, visible_ids: Iterable[str]) -> None:
        self._ids.difference_update(visible_ids)

    def clear(self) -> None:
        self._ids.clear()

    def set_mode(self, on: bool) -> None:
        self.mode = bool(on)
        if not self.mode:
            self.clear()

    def toggle_mode(self) -> bool:
        self.set_mode(not self.mode)
        return self.mode
