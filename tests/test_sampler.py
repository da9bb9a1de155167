"""Tests for the bounded performance sampler and its report."""

import pytest

from devicefarm.core.results import UNKNOWN, QueryResult, attempt
from devicefarm.core.sampler import PerformanceSampler, SamplerState, SeriesSummary
from devicefarm.errors import ExternalCommandError


async def _no_sleep(_seconds):
    return None


def _probe(values):
    """Async probe returning successive values; an Exception instance is raised."""
    items = list(values)

    async def probe():
        item = items.pop(0)
        if isinstance(item, Exception):
            raise item
        return item

    return probe


@pytest.mark.asyncio
async def test_sampler_runs_exactly_duration_ticks():
    sampler = PerformanceSampler(
        _probe([10.0, 20.0, 30.0]), _probe([100, 110, 120]), duration=3, sleep=_no_sleep
    )
    assert sampler.state is SamplerState.idle

    report = await sampler.run()

    assert sampler.state is SamplerState.done
    assert len(report.samples) == 3
    assert report.cpu.count == 3
    assert report.cpu.average == pytest.approx(20.0)
    assert report.cpu.maximum == 30.0
    assert report.to_dict() == {
        "cpu": {"average": "20.0%", "max": "30.0%", "samples": 3},
        "memory": {"average": "110 MB", "max": "120 MB", "samples": 3},
    }


@pytest.mark.asyncio
async def test_failed_and_unparseable_readings_are_excluded():
    boom = ExternalCommandError("adb shell top -b -n 1", "device offline")
    sampler = PerformanceSampler(
        _probe([boom, 40.0, None, 20.0]),
        _probe([200, boom, boom, None]),
        duration=4,
        sleep=_no_sleep,
    )
    report = await sampler.run()

    assert sampler.cpu_series == [40.0, 20.0]
    assert sampler.memory_series == [200]
    assert report.cpu.average == pytest.approx(30.0)
    assert len(report.samples) == 4
    assert report.samples[0].cpu_percent is None


@pytest.mark.asyncio
async def test_empty_series_renders_not_available():
    boom = ExternalCommandError("xcrun simctl spawn X ps aux", "No such device")
    sampler = PerformanceSampler(
        _probe([boom, boom]), _probe([None, None]), duration=2, sleep=_no_sleep
    )
    report = await sampler.run()
    out = report.to_dict(include_samples=True)

    assert out["cpu"] == {"average": "N/A", "max": "N/A", "samples": 0}
    assert out["memory"] == {"average": "N/A", "max": "N/A", "samples": 0}
    assert [s["tick"] for s in out["series"]] == [0, 1]


@pytest.mark.asyncio
async def test_sampler_sleeps_out_the_interval():
    slept = []
    now = iter([0.0, 0.25, 1.0, 2.5])

    async def sleep(seconds):
        slept.append(seconds)

    sampler = PerformanceSampler(
        _probe([1.0, 2.0]), _probe([1, 2]), duration=2, interval=1.0, sleep=sleep, clock=lambda: next(now)
    )
    await sampler.run()
    # second tick overran its interval, so it does not sleep at all
    assert slept == [pytest.approx(0.75), 0.0]


@pytest.mark.asyncio
async def test_sampler_is_single_use():
    sampler = PerformanceSampler(_probe([1.0]), _probe([1]), duration=1, sleep=_no_sleep)
    await sampler.run()
    with pytest.raises(RuntimeError):
        await sampler.run()


def test_series_summary_of_empty():
    assert SeriesSummary.of([]).count == 0


@pytest.mark.asyncio
async def test_attempt_only_absorbs_command_failures():
    async def fails():
        raise ExternalCommandError("adb shell dumpsys battery", "closed")

    result = await attempt(fails())
    assert not result.ok
    assert result.error == "closed"
    assert result.render("{}%") == UNKNOWN

    async def broken():
        raise KeyError("bug")

    with pytest.raises(KeyError):
        await attempt(broken())


def test_query_result_none_is_failure():
    result = QueryResult.success(None)
    assert not result.ok
    assert result.render() == UNKNOWN
    assert QueryResult.success(0).render("{} MB") == "0 MB"
