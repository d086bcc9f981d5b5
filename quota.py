"""
Per-user daily quota tracking.

Two independent limits scope how often a caller may trigger generation:
attempts per (user, task) per day, and distinct tasks per user per day.
Counters live in memory and reset when the calendar day changes.
"""
import logging
import threading
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, Optional, Set

from errors import QuotaExceededError
from utils import get_day_key

logger = logging.getLogger(__name__)

PER_TASK_DAILY_LIMIT = 3
DISTINCT_TASK_DAILY_LIMIT = 5
LOCK_STRIPES = 64


@dataclass
class TaskQuotaRecord:
    date: str
    counts: Dict[str, int] = field(default_factory=dict)


@dataclass
class UserTaskSetRecord:
    date: str
    tasks: Set[str] = field(default_factory=set)


@dataclass(frozen=True)
class Admission:
    """Reservation handed out by QuotaTracker.admit, usable for a refund"""
    user_id: str
    task_id: str
    date: str


class QuotaTracker:
    def __init__(
        self,
        per_task_limit: int = PER_TASK_DAILY_LIMIT,
        daily_task_limit: int = DISTINCT_TASK_DAILY_LIMIT,
        timezone: str = "UTC",
        lock_stripes: int = LOCK_STRIPES,
    ):
        self.per_task_limit = per_task_limit
        self.daily_task_limit = daily_task_limit
        self.timezone = timezone
        self._task_counts: Dict[str, TaskQuotaRecord] = {}
        self._user_tasks: Dict[str, UserTaskSetRecord] = {}
        # Users hash onto a fixed pool of locks; same user, same lock
        self._locks: List[threading.Lock] = [threading.Lock() for _ in range(max(1, lock_stripes))]
        self._rollover_guard = threading.Lock()
        self._current_day: Optional[str] = None

    def _today(self, now: Optional[datetime]) -> str:
        return get_day_key(now, self.timezone)

    def _lock_for(self, user_id: str) -> threading.Lock:
        return self._locks[hash(user_id) % len(self._locks)]

    def _roll_over(self, today: str) -> None:
        """Drops records from earlier days the first time a new day is seen"""
        if self._current_day is not None and today <= self._current_day:
            return
        with self._rollover_guard:
            if self._current_day is not None and today <= self._current_day:
                return
            for lock in self._locks:
                lock.acquire()
            try:
                for records in (self._task_counts, self._user_tasks):
                    for user_id in [u for u, r in records.items() if r.date < today]:
                        del records[user_id]
                self._current_day = today
            finally:
                for lock in reversed(self._locks):
                    lock.release()
        logger.info("Quota day rolled over to %s", today)

    def _task_record(self, user_id: str, today: str) -> TaskQuotaRecord:
        record = self._task_counts.get(user_id)
        if record is None or record.date != today:
            record = TaskQuotaRecord(date=today)
            self._task_counts[user_id] = record
        return record

    def _user_record(self, user_id: str, today: str) -> UserTaskSetRecord:
        record = self._user_tasks.get(user_id)
        if record is None or record.date != today:
            if record is not None:
                logger.info("Reset daily task set for user %s on %s", user_id, today)
            record = UserTaskSetRecord(date=today)
            self._user_tasks[user_id] = record
        return record

    def check_task_quota(self, user_id: str, task_id: str, now: Optional[datetime] = None) -> bool:
        today = self._today(now)
        record = self._task_counts.get(user_id)
        count = record.counts.get(task_id, 0) if record and record.date == today else 0
        allowed = count < self.per_task_limit
        logger.info(
            "User %s task %s attempts on %s: %d (allowed: %s)",
            user_id, task_id, today, count, allowed,
        )
        return allowed

    def record_task_attempt(self, user_id: str, task_id: str, now: Optional[datetime] = None) -> int:
        record = self._task_record(user_id, self._today(now))
        record.counts[task_id] = record.counts.get(task_id, 0) + 1
        return record.counts[task_id]

    def check_user_daily_quota(self, user_id: str, task_id: str, now: Optional[datetime] = None) -> bool:
        today = self._today(now)
        record = self._user_tasks.get(user_id)
        if record is None or record.date != today:
            return True
        if task_id in record.tasks:
            return True
        allowed = len(record.tasks) < self.daily_task_limit
        logger.info(
            "User %s has %d distinct tasks on %s (allowed: %s)",
            user_id, len(record.tasks), today, allowed,
        )
        return allowed

    def record_user_task(self, user_id: str, task_id: str, now: Optional[datetime] = None) -> bool:
        """Adds the task to today's set; returns True if it was not there yet"""
        record = self._user_record(user_id, self._today(now))
        if task_id in record.tasks:
            return False
        record.tasks.add(task_id)
        return True

    def admit(self, user_id: str, task_id: str, now: Optional[datetime] = None) -> Admission:
        """Checks both limits and records the attempt as one atomic step.

        Raises QuotaExceededError without touching any counter when either
        limit is reached.
        """
        today = self._today(now)
        self._roll_over(today)
        with self._lock_for(user_id):
            if not self.check_task_quota(user_id, task_id, now):
                raise QuotaExceededError(
                    "Checklist generation limit reached for this task today for this user",
                    reason="task_limit",
                )
            if not self.check_user_daily_quota(user_id, task_id, now):
                raise QuotaExceededError(
                    "User has reached the daily checklist generation limit for new tasks",
                    reason="daily_limit",
                )
            self.record_task_attempt(user_id, task_id, now)
            self.record_user_task(user_id, task_id, now)

        logger.info("Admitted user %s task %s on %s", user_id, task_id, today)
        return Admission(user_id=user_id, task_id=task_id, date=today)

    def refund(self, admission: Admission) -> None:
        """Gives back an admission's attempt, unless its day is already over"""
        with self._lock_for(admission.user_id):
            record = self._task_counts.get(admission.user_id)
            if record is None or record.date != admission.date:
                return
            remaining = record.counts.get(admission.task_id, 0) - 1
            if remaining > 0:
                record.counts[admission.task_id] = remaining
            else:
                record.counts.pop(admission.task_id, None)

            # No attempt left holding the task, so it no longer takes a distinct-task slot
            tasks = self._user_tasks.get(admission.user_id)
            if remaining <= 0 and tasks and tasks.date == admission.date:
                tasks.tasks.discard(admission.task_id)

        logger.info("Refunded user %s task %s on %s", admission.user_id, admission.task_id, admission.date)

    def tracked_users(self) -> int:
        """Number of users with quota records still held in memory"""
        return len(set(self._task_counts) | set(self._user_tasks))

    def snapshot(self, user_id: str, now: Optional[datetime] = None) -> Dict[str, object]:
        today = self._today(now)
        with self._lock_for(user_id):
            record = self._task_counts.get(user_id)
            tasks = self._user_tasks.get(user_id)
            return {
                "date": today,
                "counts": dict(record.counts) if record and record.date == today else {},
                "tasks": sorted(tasks.tasks) if tasks and tasks.date == today else [],
            }
