# tests/services/test_series_generator.py
import math
import numpy as np
import pytest

from core.timeframes import FIXED_BASE_DATE_MS, TIMEFRAME_SPECS, Timeframe, to_epoch_ms
from schemas.chart import Dataset, VolumeColorTag
from services.random_source import seeded_random
from services.series_generator import extend_backward, seed_window

DAY_MS = 24 * 60 * 60 * 1000


def _epochs(dataset: Dataset):
    return np.array([bar.epoch_ms for bar in dataset.candlestick], dtype=np.int64)


# --- seed_window ---
@pytest.mark.parametrize("timeframe", list(Timeframe))
@pytest.mark.parametrize("count", [0, 1, 30, 96])
def test_seed_window_shape_and_invariants(timeframe, count):
    """n velas, n volúmenes, orden ascendente e invariantes high/low."""
    dataset = seed_window(timeframe, 100000, count)

    assert len(dataset.candlestick) == count
    assert len(dataset.volume) == count
    assert dataset.is_time_ascending()
    assert dataset.is_aligned()
    for bar in dataset.candlestick:
        assert bar.low <= min(bar.open, bar.close)
        assert bar.high >= max(bar.open, bar.close)
        assert bar.open == round(bar.open, 2)
    for vol in dataset.volume:
        assert 10000 <= vol.value < 60000
        assert vol.value == int(vol.value)


def test_seed_window_starts_at_fixed_anchor_and_keeps_spacing():
    dataset = seed_window("4h", 100000, 60)
    epochs = _epochs(dataset)
    assert epochs[0] == FIXED_BASE_DATE_MS
    assert np.all(np.diff(epochs) == TIMEFRAME_SPECS[Timeframe.H4].interval_ms)


def test_seed_window_time_representation():
    """Diario -> 'YYYY-MM-DD'; intradía -> segundos Unix enteros."""
    daily = seed_window("1d", 100000, 3)
    assert [bar.time for bar in daily.candlestick] == ["2026-01-01", "2026-01-02", "2026-01-03"]
    hourly = seed_window("1h", 100000, 2)
    assert hourly.candlestick[0].time == FIXED_BASE_DATE_MS // 1000
    assert hourly.candlestick[1].time == FIXED_BASE_DATE_MS // 1000 + 3600


def test_seed_window_is_reproducible():
    first = seed_window("15m", 100000, 96)
    second = seed_window("15m", 100000, 96)
    assert first.model_dump() == second.model_dump()


def test_seed_window_first_bar_uses_documented_seed_sequence():
    """Primera vela diaria: semilla base ord('1') * 1000, un valor aleatorio por paso."""
    seed = ord("1") * 1000
    volatility = 0.03
    change = (seeded_random(seed + 1) - 0.5) * 2 * volatility
    close = 100000 * (1 + change)
    high = max(100000, close) * (1 + seeded_random(seed + 2) * volatility * 0.5)
    low = min(100000, close) * (1 - seeded_random(seed + 3) * volatility * 0.5)
    volume = math.floor(seeded_random(seed + 4) * 50000) + 10000

    bar = seed_window("1d", 100000, 1).candlestick[0]
    vol = seed_window("1d", 100000, 1).volume[0]
    assert bar.open == 100000
    assert bar.close == pytest.approx(close, abs=0.006)
    assert bar.high == pytest.approx(high, abs=0.006)
    assert bar.low == pytest.approx(low, abs=0.006)
    assert vol.value == volume


def test_seed_window_price_continuity():
    """El open de cada vela es el close de la anterior (salvo redondeo)."""
    dataset = seed_window("1h", 100000, 72)
    for prev, cur in zip(dataset.candlestick, dataset.candlestick[1:]):
        assert cur.open == pytest.approx(prev.close, abs=0.011)


def test_volume_color_tag_follows_raw_direction():
    dataset = seed_window("1d", 100000, 30)
    for bar, vol in zip(dataset.candlestick, dataset.volume):
        expected = VolumeColorTag.UP if bar.close >= bar.open else VolumeColorTag.DOWN
        assert vol.color_tag == expected


def test_unknown_timeframe_fails_fast():
    with pytest.raises(ValueError):
        seed_window("2h", 100000, 10)
    with pytest.raises(ValueError):
        extend_backward("1w", FIXED_BASE_DATE_MS, 10, 1000)


# --- extend_backward ---
@pytest.mark.parametrize("timeframe", list(Timeframe))
def test_extend_backward_is_strictly_before_and_contiguous(timeframe):
    interval = TIMEFRAME_SPECS[timeframe].interval_ms
    history = extend_backward(timeframe, FIXED_BASE_DATE_MS, 25, 3000)
    epochs = _epochs(history)

    assert len(history.candlestick) == 25
    assert len(history.volume) == 25
    assert np.all(epochs < FIXED_BASE_DATE_MS)
    assert np.all(np.diff(epochs) == interval)
    assert epochs[-1] == FIXED_BASE_DATE_MS - interval
    assert history.is_aligned()


def test_extend_backward_empty_for_non_positive_count():
    assert extend_backward("1d", FIXED_BASE_DATE_MS, 0, 1000).is_empty()
    assert extend_backward("1d", FIXED_BASE_DATE_MS, -3, 1000).is_empty()


def test_extend_backward_randomized_base_price():
    """El precio inicial se re-aleatoriza entre 0.9x y 1.1x del precio base."""
    seed = ord("1") * 1000 + 1000
    expected_open = 100000 * (0.9 + seeded_random(seed) * 0.2)
    history = extend_backward("1d", FIXED_BASE_DATE_MS, 5, 1000)
    assert history.candlestick[0].open == pytest.approx(expected_open, abs=0.006)
    assert 90000 <= history.candlestick[0].open <= 110000


def test_extend_backward_reproducible_and_offset_dependent():
    a = extend_backward("4h", FIXED_BASE_DATE_MS, 30, 1000)
    b = extend_backward("4h", FIXED_BASE_DATE_MS, 30, 1000)
    c = extend_backward("4h", FIXED_BASE_DATE_MS, 30, 2000)
    assert a.model_dump() == b.model_dump()
    assert [bar.close for bar in a.candlestick] != [bar.close for bar in c.candlestick]


def test_extend_backward_concatenation_scenario():
    """30 velas diarias + 5 anteriores: 35 velas, la nueva [4] es el día previo a la original [0]."""
    window = seed_window("1d", 100000, 30)
    history = extend_backward("1d", to_epoch_ms(window.candlestick[0].time), 5, 1000)
    merged = Dataset(
        timeframe=Timeframe.D1,
        candlestick=history.candlestick + window.candlestick,
        volume=history.volume + window.volume,
    )

    assert len(merged.candlestick) == 35
    assert merged.is_time_ascending()
    assert merged.candlestick[:5] == history.candlestick
    assert merged.candlestick[4].time == "2025-12-31"
    assert merged.candlestick[5].epoch_ms - merged.candlestick[4].epoch_ms == DAY_MS
