# services/booking_lock.py
"""
Per-booking mutual exclusion for payment reconciliation.

Two callbacks for the same booking must not interleave their
read-installments / decide-status / write sequence. Locks live in-process
and are dropped once no thread holds or waits on them.
"""
import threading
from contextlib import contextmanager
from typing import Dict, Generator


class BookingLockRegistry:

     def __init__(self):
          self._guard = threading.Lock()
          self._locks: Dict[str, threading.Lock] = {}
          self._waiters: Dict[str, int] = {}

     @contextmanager
     def hold(self, booking_id: str) -> Generator[None, None, None]:
          with self._guard:
               lock = self._locks.setdefault(booking_id, threading.Lock())
               self._waiters[booking_id] = self._waiters.get(booking_id, 0) + 1
          lock.acquire()
          try:
               yield
          finally:
               lock.release()
               with self._guard:
                    self._waiters[booking_id] -= 1
                    if self._waiters[booking_id] == 0:
                         del self._waiters[booking_id]
                         del self._locks[booking_id]

     def active_count(self) -> int:
          with self._guard:
               return len(self._locks)


booking_locks = BookingLockRegistry()
