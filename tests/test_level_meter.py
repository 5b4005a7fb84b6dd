"""Tests for level normalization, the waveform buffer and the meter loop."""

from __future__ import annotations

import threading
import time

import pytest

from level_meter import LevelMeter, WaveformBuffer, normalized_power, power_to_db


# ---------------------------------------------------------------
# normalized_power
# ---------------------------------------------------------------

def test_normalized_power_bounds() -> None:
    assert normalized_power(-80.0) == 0.0
    assert normalized_power(-160.0) == 0.0
    assert normalized_power(0.0) == 1.0
    assert normalized_power(6.0) == 1.0


def test_normalized_power_is_monotonic() -> None:
    readings = [-120.0, -80.0, -79.9, -60.0, -40.0, -20.0, -6.0, -0.5, 0.0]
    values = [normalized_power(db) for db in readings]
    assert values == sorted(values)
    assert all(0.0 <= v <= 1.0 for v in values)


def test_normalized_power_is_linear_amplitude() -> None:
    assert normalized_power(-20.0) == pytest.approx(0.1)
    assert normalized_power(-6.0) == pytest.approx(0.501, abs=1e-3)


def test_power_to_db() -> None:
    assert power_to_db(0.0) == -160.0
    assert power_to_db(1.0) == 0.0
    assert power_to_db(0.1) == pytest.approx(-20.0)


# ---------------------------------------------------------------
# WaveformBuffer
# ---------------------------------------------------------------

def test_waveform_buffer_is_always_full_length() -> None:
    buffer = WaveformBuffer()
    assert len(buffer) == 40
    assert buffer.snapshot() == (0.0,) * 40

    for i in range(100):
        buffer.push(i / 100)
        assert len(buffer) == 40

    snapshot = buffer.snapshot()
    assert snapshot[0] == pytest.approx(0.60)
    assert snapshot[-1] == pytest.approx(0.99)


def test_waveform_buffer_evicts_oldest_first() -> None:
    buffer = WaveformBuffer(size=3)
    for value in (0.1, 0.2, 0.3, 0.4):
        buffer.push(value)
    assert buffer.snapshot() == (0.2, 0.3, 0.4)


def test_waveform_buffer_reset() -> None:
    buffer = WaveformBuffer()
    buffer.push(0.5)
    buffer.reset()
    assert buffer.snapshot() == (0.0,) * 40


# ---------------------------------------------------------------
# LevelMeter
# ---------------------------------------------------------------

def test_meter_delivers_samples_until_stopped() -> None:
    samples: list[float] = []
    meter = LevelMeter(lambda: 0.25, samples.append, interval_s=0.005)

    meter.start()
    deadline = time.time() + 2.0
    while len(samples) < 5 and time.time() < deadline:
        time.sleep(0.01)
    meter.stop()

    assert len(samples) >= 5
    assert set(samples) == {0.25}
    assert meter.running is False

    count = len(samples)
    time.sleep(0.05)
    assert len(samples) == count


def test_meter_start_twice_runs_one_loop() -> None:
    threads: set[int] = set()

    def on_sample(value: float) -> None:
        threads.add(threading.get_ident())

    meter = LevelMeter(lambda: 0.5, on_sample, interval_s=0.005)
    meter.start()
    meter.start()
    time.sleep(0.05)
    meter.stop()

    assert len(threads) == 1


def test_meter_stop_without_wait_does_not_block_on_consumer() -> None:
    samples: list[float] = []
    entered = threading.Event()
    release = threading.Event()

    def on_sample(value: float) -> None:
        samples.append(value)
        entered.set()
        release.wait(timeout=2.0)

    meter = LevelMeter(lambda: 0.3, on_sample, interval_s=0.005)
    meter.start()
    assert entered.wait(timeout=2.0)

    started = time.time()
    meter.stop(wait=False)
    assert time.time() - started < 0.5

    release.set()
    time.sleep(0.05)
    assert samples == [0.3]
    assert meter.running is False


def test_meter_stop_is_idempotent() -> None:
    meter = LevelMeter(lambda: 0.0, lambda value: None, interval_s=0.01)
    meter.stop()
    meter.start()
    meter.stop()
    meter.stop(wait=False)
    assert meter.running is False


def test_meter_survives_read_failures() -> None:
    calls = {"n": 0}
    samples: list[float] = []

    def flaky_read() -> float:
        calls["n"] += 1
        if calls["n"] % 2:
            raise RuntimeError("device busy")
        return 0.4

    meter = LevelMeter(flaky_read, samples.append, interval_s=0.005)
    meter.start()
    deadline = time.time() + 2.0
    while len(samples) < 3 and time.time() < deadline:
        time.sleep(0.01)
    meter.stop()

    assert samples[:3] == [0.4, 0.4, 0.4]
