"""
Cooldown tracker - пауза между запусками одной и той же команды.

One record per user: the last command and when it started. A different
command resets the record.
"""

import threading
import time
from dataclasses import dataclass
from typing import Callable, Dict, Optional

from ..core.error_handling import Cooldown


@dataclass(frozen=True)
class CooldownRecord:
    user_id: int
    command_name: str
    timestamp: float


class CooldownTracker:

    def __init__(self, period_seconds: float = 60.0, clock: Callable[[], float] = time.monotonic):
        self.period_seconds = period_seconds
        self.clock = clock
        self._records: Dict[int, CooldownRecord] = {}
        self._lock = threading.Lock()

    def remaining(self, user_id: Optional[int], command_name: str) -> float:
        """Seconds left before command_name may run again for user_id"""
        if user_id is None or self.period_seconds <= 0:
            return 0.0
        with self._lock:
            return self._remaining(user_id, command_name, self.clock())

    def check_and_record(self, user_id: Optional[int], command_name: str) -> None:
        """Raise Cooldown if still waiting, otherwise record this invocation"""
        if user_id is None or self.period_seconds <= 0:
            return

        with self._lock:
            now = self.clock()
            left = self._remaining(user_id, command_name, now)
            if left > 0:
                raise Cooldown(
                    f"Command '{command_name}' is on cooldown for {left:.0f}s",
                    retry_after=left,
                    user_id=user_id,
                    context={'command': command_name}
                )
            self._records[user_id] = CooldownRecord(user_id, command_name, now)

    def reset(self, user_id: int) -> None:
        with self._lock:
            self._records.pop(user_id, None)

    def _remaining(self, user_id: int, command_name: str, now: float) -> float:
        record = self._records.get(user_id)
        if record is None or record.command_name != command_name:
            return 0.0
        return max(0.0, self.period_seconds - (now - record.timestamp))
