"""Consecutive-failure tracking for the meter, switch and notifier paths."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass
class ComponentHealth:
    name: str
    max_failures: int
    consecutive_failures: int = 0
    total_failures: int = 0
    last_error: str = ""

    @property
    def healthy(self) -> bool:
        return self.consecutive_failures < self.max_failures


class HealthChecker:
    """Counts failures per device path; a path turns unhealthy after its limit.

    Limits differ per path because the paths fail differently: the cloud
    meter drops the odd poll, while a relay hub that misses commands needs
    attention quickly. Reporting transitions is left to the caller.
    """

    def __init__(
        self,
        max_consecutive_failures: int = 3,
        limits: dict[str, int] | None = None,
    ) -> None:
        self._default_limit = max_consecutive_failures
        self._limits = dict(limits or {})
        self._components: dict[str, ComponentHealth] = {}

    def __contains__(self, name: str) -> bool:
        return name in self._components

    def register(self, name: str) -> ComponentHealth:
        component = ComponentHealth(name, self._limits.get(name, self._default_limit))
        self._components[name] = component
        return component

    def _get(self, name: str) -> ComponentHealth:
        return self._components.get(name) or self.register(name)

    def record_success(self, name: str) -> None:
        self._get(name).consecutive_failures = 0

    def record_failure(self, name: str, error: str = "") -> None:
        c = self._get(name)
        c.consecutive_failures += 1
        c.total_failures += 1
        c.last_error = error

    def is_healthy(self, name: str) -> bool:
        c = self._components.get(name)
        return c.healthy if c else True

    def status(self, name: str) -> ComponentHealth | None:
        return self._components.get(name)

    def unhealthy(self) -> list[str]:
        return [name for name, c in self._components.items() if not c.healthy]
