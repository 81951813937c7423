"""In-memory usage counters for the /api/usage endpoint."""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime, timezone
from threading import Lock
from typing import Any, Mapping


class RequestTracker:
    """Settles one request in the counters exactly once."""

    def __init__(self, counters: "UsageCounters") -> None:
        self._counters = counters
        self._finished = False

    @property
    def finished(self) -> bool:
        return self._finished

    def finish(self, failed: bool = False) -> None:
        if self._finished:
            return
        self._finished = True
        self._counters.finish_request(failed=failed)

    def fail(self) -> None:
        self.finish(failed=True)


@dataclass
class UsageCounters:
    """Lock-guarded request, dispatch and token counters."""

    _lock: Lock = field(default_factory=Lock, repr=False)
    _started_at: str = field(
        default_factory=lambda: datetime.now(timezone.utc).isoformat()
    )
    _received: int = 0
    _served: int = 0
    _failed: int = 0
    _ongoing: int = 0
    _streamed: int = 0
    _fallbacks: int = 0
    _by_model: Counter = field(default_factory=Counter)
    _prompt_tokens: int = 0
    _completion_tokens: int = 0

    def start_request(self) -> RequestTracker:
        with self._lock:
            self._received += 1
            self._ongoing += 1
        return RequestTracker(self)

    def finish_request(self, failed: bool = False) -> None:
        with self._lock:
            if failed:
                self._failed += 1
            else:
                self._served += 1
            self._ongoing = max(self._ongoing - 1, 0)

    def record_dispatch(self, model_id: str, *, stream: bool, fell_back: bool) -> None:
        """Count a request handed to the backend."""
        with self._lock:
            self._by_model[model_id] += 1
            if stream:
                self._streamed += 1
            if fell_back:
                self._fallbacks += 1

    def record_usage(self, usage: Mapping[str, Any]) -> None:
        """Add an OpenAI-style usage block to the token totals."""
        with self._lock:
            self._prompt_tokens += int(usage.get("prompt_tokens") or 0)
            self._completion_tokens += int(usage.get("completion_tokens") or 0)

    def snapshot(self) -> dict[str, Any]:
        with self._lock:
            return {
                "started_at": self._started_at,
                "received": self._received,
                "served": self._served,
                "failed": self._failed,
                "ongoing": self._ongoing,
                "streamed": self._streamed,
                "fallbacks": self._fallbacks,
                "by_model": dict(self._by_model),
                "prompt_tokens": self._prompt_tokens,
                "completion_tokens": self._completion_tokens,
            }


USAGE_COUNTERS = UsageCounters()


def build_usage_snapshot() -> dict[str, Any]:
    """Build the /api/usage payload."""
    return {
        "generated_at": datetime.now(timezone.utc).isoformat(),
        "realtime": USAGE_COUNTERS.snapshot(),
    }
