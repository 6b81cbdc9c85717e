"""
Bracket assignment store.

The only state the aggregator owns: for each group a fixed-length list of
optional match ids, plus an optional final match id. Created once with
every slot empty and injected wherever it is needed.

Any group slot change (assign or clear) also clears the final, because
the group champions feeding the final may have changed. Each slot change
bumps a generation counter; a final computed from an older generation is
never stored.
"""
import threading
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Tuple

from bracket_aggregator.services.errors import AssignmentValidationError


@dataclass(frozen=True)
class AssignedSlot:
    group_id: str
    slot_index: int
    match_id: int


@dataclass(frozen=True)
class AssignmentSnapshot:
    """Immutable point-in-time copy of the store."""

    groups: Dict[str, Tuple[Optional[int], ...]]
    final_match_id: Optional[int]
    generation: int = 0

    def assigned_slots(self) -> List[AssignedSlot]:
        return [
            AssignedSlot(group_id, index, match_id)
            for group_id, slots in self.groups.items()
            for index, match_id in enumerate(slots)
            if match_id is not None
        ]

    def is_used(self, match_id: int) -> bool:
        return match_id == self.final_match_id or any(s.match_id == match_id for s in self.assigned_slots())

    def other_match_ids(self, group_id: str, slot_index: int) -> List[int]:
        """Every assigned id except the given slot's, final included."""
        ids = [
            s.match_id
            for s in self.assigned_slots()
            if not (s.group_id == group_id and s.slot_index == slot_index)
        ]
        if self.final_match_id is not None:
            ids.append(self.final_match_id)
        return ids


class BracketAssignmentStore:
    def __init__(self, group_ids: Iterable[str], slots_per_group: int):
        self._lock = threading.Lock()
        self._slots_per_group = slots_per_group
        self._groups: Dict[str, List[Optional[int]]] = {g: [None] * slots_per_group for g in group_ids}
        self._final_match_id: Optional[int] = None
        self._generation = 0

    @property
    def group_ids(self) -> List[str]:
        return list(self._groups)

    @property
    def slots_per_group(self) -> int:
        return self._slots_per_group

    def snapshot(self) -> AssignmentSnapshot:
        with self._lock:
            return AssignmentSnapshot(
                groups={g: tuple(slots) for g, slots in self._groups.items()},
                final_match_id=self._final_match_id,
                generation=self._generation,
            )

    def check_slot(self, group_id: str, slot_index: int) -> None:
        if group_id not in self._groups:
            raise AssignmentValidationError(f"Unknown group: {group_id}")
        if not isinstance(slot_index, int) or not 0 <= slot_index < self._slots_per_group:
            raise AssignmentValidationError(f"Invalid slot position: {slot_index}")

    def write_slot(self, group_id: str, slot_index: int, match_id: Optional[int]) -> None:
        """
        Write (or clear, with None) one slot and reset the final.

        The duplicate check is repeated under the lock so a concurrent write
        of the same id cannot land twice.
        """
        self.check_slot(group_id, slot_index)
        with self._lock:
            if match_id is not None:
                used = match_id == self._final_match_id or any(match_id in slots for slots in self._groups.values())
                if used:
                    raise AssignmentValidationError(f"Match {match_id} is already assigned in this tournament")
            self._groups[group_id][slot_index] = match_id
            self._final_match_id = None
            self._generation += 1

    @property
    def generation(self) -> int:
        with self._lock:
            return self._generation

    def set_final(self, match_id: Optional[int], expected_generation: Optional[int] = None) -> bool:
        """
        Store the final id. With `expected_generation`, only if no slot has
        changed since that generation; returns False when the write is dropped.
        """
        with self._lock:
            if expected_generation is not None and expected_generation != self._generation:
                return False
            self._final_match_id = match_id
            return True
