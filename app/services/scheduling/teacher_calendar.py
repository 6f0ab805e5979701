"""
Teacher calendar.
Read/write view of every teacher's committed slots across all sections of a session.
"""

from collections import defaultdict
from typing import Optional

from .types import TeacherCommitment


class TeacherCalendar:
    """
    Snapshot of committed teacher slots plus this run's tentative bookings.

    The snapshot is taken once, before the search starts, and is never
    mutated. Tentative bookings live in a separate layer so a discarded run
    leaves nothing behind.
    """

    def __init__(self, commitments: list[TeacherCommitment]):
        snapshot: dict[tuple[int, int, int], int] = {}
        for c in commitments:
            snapshot.setdefault((c.teacher_id, c.day, c.slot_number), c.section_id)
        self._snapshot = snapshot
        self._tentative: dict[tuple[int, int, int], int] = {}

        # teacher -> day -> booked slot numbers, covering both layers
        self._by_day: dict[int, dict[int, set[int]]] = defaultdict(lambda: defaultdict(set))
        for teacher_id, day, slot in snapshot:
            self._by_day[teacher_id][day].add(slot)

    def is_free(self, teacher_id: int, day: int, slot: int) -> bool:
        key = (teacher_id, day, slot)
        return key not in self._snapshot and key not in self._tentative

    def booked_by(self, teacher_id: int, day: int, slot: int) -> Optional[int]:
        key = (teacher_id, day, slot)
        return self._tentative.get(key, self._snapshot.get(key))

    def commit(self, teacher_id: int, day: int, slot: int, section_id: int) -> None:
        """Book a slot tentatively for this run."""
        if not self.is_free(teacher_id, day, slot):
            raise ValueError(
                f"Teacher {teacher_id} already booked on day {day} slot {slot}"
            )
        self._tentative[(teacher_id, day, slot)] = section_id
        self._by_day[teacher_id][day].add(slot)

    def release(self, teacher_id: int, day: int, slot: int) -> None:
        """Undo a tentative booking (backtracking). Snapshot entries are untouchable."""
        if self._tentative.pop((teacher_id, day, slot), None) is not None:
            self._by_day[teacher_id][day].discard(slot)

    def reset(self) -> None:
        """Drop every tentative booking."""
        for teacher_id, day, slot in list(self._tentative):
            self.release(teacher_id, day, slot)

    def daily_load(self, teacher_id: int, day: int) -> int:
        return len(self._by_day[teacher_id][day])

    def consecutive_run(self, teacher_id: int, day: int, slot: int) -> int:
        """Length of the unbroken block of this teacher's slots ending right before `slot`."""
        booked = self._by_day[teacher_id][day]
        run = 0
        current = slot - 1
        while current in booked:
            run += 1
            current -= 1
        return run

    def run_through(self, teacher_id: int, day: int, slot: int) -> int:
        """Length of the block the teacher would teach if booked at `slot`, counting both sides."""
        booked = self._by_day[teacher_id][day]
        before = self.consecutive_run(teacher_id, day, slot)
        after = 0
        current = slot + 1
        while current in booked:
            after += 1
            current += 1
        return before + 1 + after

    def longest_run(self, teacher_id: int, day: int) -> int:
        booked = sorted(self._by_day[teacher_id][day])
        best = run = 0
        previous = None
        for slot in booked:
            run = run + 1 if previous is not None and slot == previous + 1 else 1
            best = max(best, run)
            previous = slot
        return best

    def tentative_commitments(self) -> list[TeacherCommitment]:
        return [
            TeacherCommitment(teacher_id=t, day=d, slot_number=s, section_id=section_id)
            for (t, d, s), section_id in sorted(self._tentative.items())
        ]

    def snapshot_commitments(self) -> list[TeacherCommitment]:
        return [
            TeacherCommitment(teacher_id=t, day=d, slot_number=s, section_id=section_id)
            for (t, d, s), section_id in sorted(self._snapshot.items())
        ]
