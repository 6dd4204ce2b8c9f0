"""In-memory fixed-window rate limiter with abuse escalation.

Notes:
- Per-process only: running multiple workers multiplies the effective limit.
- Thread-safe: uses a lock around shared state.
- Blocks expire lazily: the deadline is checked on every lookup, and the
  periodic sweep drops stale state no request touched.
"""

from __future__ import annotations

import logging
import math
import threading
import time
from dataclasses import dataclass
from typing import Callable, Mapping

from app.adapters.rate_limit.base import AbstractRateLimiter, EndpointPolicy, RateLimitResult

logger = logging.getLogger(__name__)

BLOCKED_MESSAGE = "Your IP has been temporarily blocked due to suspicious activity."


@dataclass
class _WindowState:
    count: int
    reset_at: float


@dataclass(frozen=True)
class SuspiciousActivity:
    """One suspicious event recorded against a client."""

    client_id: str
    reason: str
    timestamp: float


class InMemoryAbuseGuard(AbstractRateLimiter):
    """Per-(client, endpoint) fixed-window limiter that blocks repeat offenders.

    Every rejected request is logged as suspicious activity for the client.
    Once ``suspicious_threshold`` events fall within the trailing
    ``block_duration_seconds``, the client is blocked on every endpoint until
    the block expires. The same duration bounds how long events are retained.

    Important:
        This guard is per-process only. If the API runs with multiple workers,
        each worker will enforce its own independent limits and blocks.
    """

    def __init__(
        self,
        policies: Mapping[str, EndpointPolicy],
        *,
        block_duration_seconds: float = 900.0,
        suspicious_threshold: int = 5,
        clock: Callable[[], float] = time.time,
    ) -> None:
        """Initialize the guard.

        Args:
            policies: Endpoint identifier to policy. Unknown endpoints are
                unrestricted.
            block_duration_seconds: Block length, also the window in which
                suspicious events are counted and retained.
            suspicious_threshold: Number of recent events that triggers a block.
            clock: Time source function returning UNIX time in seconds.

        Raises:
            ValueError: If the threshold, duration or a policy is invalid.
        """
        if suspicious_threshold < 1:
            raise ValueError("suspicious_threshold must be >= 1")
        if block_duration_seconds <= 0:
            raise ValueError("block_duration_seconds must be > 0")
        for endpoint_id, policy in policies.items():
            if policy.max_requests < 1 or policy.window_seconds <= 0:
                raise ValueError(f"invalid rate limit policy for {endpoint_id!r}")

        self._policies = dict(policies)
        self._block_duration = block_duration_seconds
        self._threshold = suspicious_threshold
        self._clock = clock
        self._lock = threading.RLock()
        self._state_by_key: dict[tuple[str, str], _WindowState] = {}
        self._blocked_until: dict[str, float] = {}
        self._suspicious: list[SuspiciousActivity] = []

    @property
    def policies(self) -> dict[str, EndpointPolicy]:
        return dict(self._policies)

    def _build_blocked_result(self, *, now: float, blocked_until: float) -> RateLimitResult:
        return RateLimitResult(
            allowed=False,
            message=BLOCKED_MESSAGE,
            retry_after_seconds=max(0, int(math.ceil(blocked_until - now))),
            blocked=True,
        )

    def _build_throttled_result(
        self, *, now: float, policy: EndpointPolicy, state: _WindowState
    ) -> RateLimitResult:
        return RateLimitResult(
            allowed=False,
            message=policy.message,
            reset_at=state.reset_at,
            retry_after_seconds=max(0, int(math.ceil(state.reset_at - now))),
            limit=policy.max_requests,
            remaining=0,
        )

    def _active_block_locked(self, client_id: str, now: float) -> float | None:
        """Return the block deadline for client_id, expiring it if elapsed."""
        blocked_until = self._blocked_until.get(client_id)
        if blocked_until is None:
            return None
        if now >= blocked_until:
            del self._blocked_until[client_id]
            logger.info("security.client_unblocked", extra={"client_id": client_id})
            return None
        return blocked_until

    def check_rate_limit(self, client_id: str, endpoint_id: str) -> RateLimitResult:
        """Count one request and decide whether it may proceed.

        Order of evaluation: unknown endpoint (allow), active block (reject),
        expired or missing window (start a new one), exhausted window
        (reject and log suspicious activity), otherwise count it.

        Args:
            client_id: Client identifier, usually the remote IP.
            endpoint_id: Protected endpoint identifier.

        Returns:
            RateLimitResult with the decision and header metadata.
        """
        policy = self._policies.get(endpoint_id)
        if policy is None:
            return RateLimitResult(allowed=True)

        with self._lock:
            now = self._clock()

            blocked_until = self._active_block_locked(client_id, now)
            if blocked_until is not None:
                return self._build_blocked_result(now=now, blocked_until=blocked_until)

            key = (client_id, endpoint_id)
            state = self._state_by_key.get(key)

            # inclusive: a request arriving exactly at reset_at opens a new window
            if state is None or state.reset_at <= now:
                state = _WindowState(count=1, reset_at=now + policy.window_seconds)
                self._state_by_key[key] = state
                return RateLimitResult(
                    allowed=True,
                    reset_at=state.reset_at,
                    limit=policy.max_requests,
                    remaining=policy.max_requests - 1,
                )

            if state.count >= policy.max_requests:
                result = self._build_throttled_result(now=now, policy=policy, state=state)
                self.log_suspicious_activity(client_id, f"Rate limit exceeded for {endpoint_id}")
                return result

            state.count += 1
            return RateLimitResult(
                allowed=True,
                reset_at=state.reset_at,
                limit=policy.max_requests,
                remaining=max(0, policy.max_requests - state.count),
            )

    def log_suspicious_activity(self, client_id: str, reason: str) -> None:
        """Record a suspicious event and block the client past the threshold.

        The retention prune afterwards is global: events of every client older
        than the block duration are dropped.

        Args:
            client_id: Offending client.
            reason: Short human-readable description.
        """
        with self._lock:
            now = self._clock()
            self._suspicious.append(SuspiciousActivity(client_id, reason, now))

            recent = sum(
                1
                for event in self._suspicious
                if event.client_id == client_id and now - event.timestamp < self._block_duration
            )
            logger.warning(
                "security.suspicious_activity",
                extra={"client_id": client_id, "reason": reason, "recent_events": recent},
            )
            if recent >= self._threshold:
                self.block(client_id)

            self._prune_suspicious_locked(now)

    def block(self, client_id: str) -> None:
        """Block client_id on every endpoint for the block duration.

        Re-blocking an already blocked client extends the deadline, never
        shortens it.
        """
        with self._lock:
            now = self._clock()
            deadline = now + self._block_duration
            self._blocked_until[client_id] = max(self._blocked_until.get(client_id, 0.0), deadline)
            logger.warning(
                "security.client_blocked",
                extra={
                    "client_id": client_id,
                    "block_duration_s": self._block_duration,
                },
            )

    def is_blocked(self, client_id: str) -> bool:
        with self._lock:
            return self._active_block_locked(client_id, self._clock()) is not None

    def sweep(self) -> int:
        """Drop expired windows, elapsed blocks and stale suspicious events.

        Returns:
            Number of window counters removed.
        """
        with self._lock:
            now = self._clock()
            # same inclusive boundary as check_rate_limit
            expired_keys = [k for k, s in self._state_by_key.items() if s.reset_at <= now]
            for key in expired_keys:
                del self._state_by_key[key]

            for client_id in [c for c, until in self._blocked_until.items() if now >= until]:
                self._active_block_locked(client_id, now)

            self._prune_suspicious_locked(now)

        if expired_keys:
            logger.debug("rate_limit.sweep", extra={"removed": len(expired_keys)})
        return len(expired_keys)

    def get_security_stats(self) -> dict[str, int]:
        with self._lock:
            now = self._clock()
            return {
                "active_blocks": sum(1 for until in self._blocked_until.values() if now < until),
                "suspicious_activities_count": len(self._suspicious),
                "rate_limit_store_size": len(self._state_by_key),
            }

    def _prune_suspicious_locked(self, now: float) -> None:
        self._suspicious = [
            event for event in self._suspicious if now - event.timestamp < self._block_duration
        ]
