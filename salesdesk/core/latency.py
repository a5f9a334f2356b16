from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass, field

from salesdesk.core.config import Settings

Sleep = Callable[[float], Awaitable[None]]


@dataclass
class SimulatedLatency:
    """Fixed per-operation delay standing in for remote I/O.

    Services pass the base delay for each call; ``overrides`` replaces it per
    operation name and ``scale`` multiplies whatever remains. A disabled policy
    never suspends, so tests stay deterministic.
    """

    enabled: bool = True
    scale: float = 1.0
    overrides: Mapping[str, int] = field(default_factory=dict)
    sleep: Sleep = asyncio.sleep

    @classmethod
    def disabled(cls) -> SimulatedLatency:
        return cls(enabled=False)

    @classmethod
    def from_settings(cls, settings: Settings) -> SimulatedLatency:
        return cls(
            enabled=settings.simulated_latency_enabled,
            scale=settings.simulated_latency_scale,
            overrides=dict(settings.simulated_latency_overrides),
        )

    def delay_seconds(self, operation: str, base_ms: int) -> float:
        if not self.enabled:
            return 0.0
        delay_ms = self.overrides.get(operation, base_ms)
        return max(delay_ms * self.scale, 0.0) / 1000

    async def wait(self, operation: str, base_ms: int) -> None:
        seconds = self.delay_seconds(operation, base_ms)
        if seconds > 0:
            await self.sleep(seconds)
