from __future__ import annotations
import threading
from typing import Dict, Iterable, List, Mapping, Optional, Tuple

from ..core.models import ExecutionResult, ResultKey


class ResultStore:
    """
    Latest ExecutionResult per ResultKey.

    Each entry remembers the dispatch sequence of the run that produced it.
    With ``reject_stale`` on, a commit from an earlier dispatch never replaces
    an entry from a later one; otherwise the last commit wins. The lock only
    guards the dict itself, so no writer ever waits on an execution.
    """

    def __init__(self, reject_stale: bool = True):
        self.reject_stale = reject_stale
        self._entries: Dict[ResultKey, Tuple[Optional[int], ExecutionResult]] = {}
        self._lock = threading.Lock()

    def get(self, key: ResultKey) -> Optional[ExecutionResult]:
        with self._lock:
            entry = self._entries.get(key)
        return entry[1] if entry else None

    def get_many(self, keys: Iterable[ResultKey]) -> Dict[ResultKey, ExecutionResult]:
        """Consistent read of several keys; absent keys are left out."""
        keys = list(keys)
        with self._lock:
            return {k: self._entries[k][1] for k in keys if k in self._entries}

    def set(self, key: ResultKey, result: ExecutionResult, seq: Optional[int] = None) -> bool:
        return key in self.set_many({key: result}, seq=seq)

    def set_many(self, results: Mapping[ResultKey, ExecutionResult], seq: Optional[int] = None) -> List[ResultKey]:
        """
        Commit all results in one step; returns the keys written. The batch is
        all or nothing: if any key is stale the whole batch is rejected and
        an empty list comes back.
        """
        with self._lock:
            if any(self._is_stale(key, seq) for key in results):
                return []
            for key, result in results.items():
                self._entries[key] = (seq, result)
        return list(results)

    def delete(self, key: ResultKey) -> bool:
        with self._lock:
            return self._entries.pop(key, None) is not None

    def delete_all(self, keys: Iterable[ResultKey]) -> int:
        keys = list(keys)
        with self._lock:
            removed = [self._entries.pop(k, None) for k in keys]
        return sum(1 for r in removed if r is not None)

    def snapshot(self) -> Dict[ResultKey, ExecutionResult]:
        with self._lock:
            return {k: v[1] for k, v in self._entries.items()}

    def _is_stale(self, key: ResultKey, seq: Optional[int]) -> bool:
        if not self.reject_stale or seq is None:
            return False
        current = self._entries.get(key)
        return current is not None and current[0] is not None and current[0] > seq

    def __contains__(self, key) -> bool:
        with self._lock:
            return key in self._entries

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
