from __future__ import annotations

import asyncio
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any

import structlog

from devicefarm.core.results import attempt

log = structlog.get_logger()

NOT_AVAILABLE = "N/A"

Probe = Callable[[], Awaitable[float | None]]


class SamplerState(StrEnum):
    idle = "idle"
    sampling = "sampling"
    summarizing = "summarizing"
    done = "done"


@dataclass(frozen=True)
class Sample:
    tick: int
    cpu_percent: float | None
    memory_mb: float | None


@dataclass(frozen=True)
class SeriesSummary:
    average: float | None
    maximum: float | None
    count: int

    @classmethod
    def of(cls, values: list[float]) -> SeriesSummary:
        if not values:
            return cls(average=None, maximum=None, count=0)
        return cls(average=sum(values) / len(values), maximum=max(values), count=len(values))

    def render(self, fmt: str) -> dict[str, Any]:
        if self.count == 0:
            return {"average": NOT_AVAILABLE, "max": NOT_AVAILABLE, "samples": 0}
        return {
            "average": fmt.format(self.average),
            "max": fmt.format(self.maximum),
            "samples": self.count,
        }


@dataclass
class PerformanceReport:
    cpu: SeriesSummary
    memory: SeriesSummary
    samples: list[Sample] = field(default_factory=list)

    def to_dict(self, include_samples: bool = False) -> dict[str, Any]:
        out: dict[str, Any] = {
            "cpu": self.cpu.render("{:.1f}%"),
            "memory": self.memory.render("{:.0f} MB"),
        }
        if include_samples:
            out["series"] = [
                {"tick": s.tick, "cpuPercent": s.cpu_percent, "memoryMb": s.memory_mb}
                for s in self.samples
            ]
        return out


class PerformanceSampler:
    """Bounded CPU/memory sampling loop.

    Runs exactly ``duration`` iterations. Each iteration awaits the CPU probe,
    then the memory probe, then sleeps out the rest of ``interval``. Readings
    that fail or do not parse are dropped from their series, not recorded as
    zero.
    """

    def __init__(
        self,
        cpu_probe: Probe,
        memory_probe: Probe,
        duration: int,
        interval: float = 1.0,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._cpu_probe = cpu_probe
        self._memory_probe = memory_probe
        self.duration = duration
        self.interval = interval
        self._sleep = sleep
        self._clock = clock
        self.state = SamplerState.idle
        self.cpu_series: list[float] = []
        self.memory_series: list[float] = []
        self.samples: list[Sample] = []

    async def run(self) -> PerformanceReport:
        if self.state is not SamplerState.idle:
            raise RuntimeError(f"sampler already used (state={self.state})")

        self.state = SamplerState.sampling
        for tick in range(self.duration):
            started = self._clock()

            cpu = await attempt(self._cpu_probe())
            if cpu.ok:
                self.cpu_series.append(cpu.value)
            memory = await attempt(self._memory_probe())
            if memory.ok:
                self.memory_series.append(memory.value)
            self.samples.append(Sample(tick=tick, cpu_percent=cpu.value, memory_mb=memory.value))

            remaining = self.interval - (self._clock() - started)
            await self._sleep(max(0.0, remaining))

        self.state = SamplerState.summarizing
        report = PerformanceReport(
            cpu=SeriesSummary.of(self.cpu_series),
            memory=SeriesSummary.of(self.memory_series),
            samples=list(self.samples),
        )
        log.info(
            "sampler.finished",
            duration=self.duration,
            cpu_samples=report.cpu.count,
            memory_samples=report.memory.count,
        )
        self.state = SamplerState.done
        return report
