# tests/db/test_dataset_registry.py
import pandas as pd
import pytest
from datetime import timezone

from core.timeframes import Timeframe
from db.dataset_registry import DatasetRegistry
from services.series_generator import extend_backward, seed_window

DAY_MS = 24 * 60 * 60 * 1000


@pytest.fixture
def registry():
    return DatasetRegistry(base_price=100000, window_counts={"1d": 30, "4h": 60, "1h": 72, "15m": 96})


def test_get_seeds_lazily_with_default_counts(registry):
    """El primer acceso siembra el dataset; los siguientes devuelven el mismo."""
    assert not registry.has("1h")
    dataset = registry.get("1h")
    assert registry.has(Timeframe.H1)
    assert len(dataset) == 72
    assert registry.get("1h") is dataset
    assert registry.load_count("1h") == 0
    assert len(registry.get("15m")) == 96


def test_default_counts_come_from_settings():
    registry = DatasetRegistry()
    assert len(registry.get("1d")) == 30
    assert len(registry.get("4h")) == 60


def test_get_unknown_timeframe_fails_fast(registry):
    with pytest.raises(ValueError):
        registry.get("5m")


def test_prepend_contiguous_history(registry):
    original = registry.get("1d")
    history = extend_backward("1d", original.earliest_epoch_ms(), 5, 1000)

    merged = registry.prepend("1d", history.candlestick, history.volume)

    assert len(merged) == 35
    assert merged.candlestick[:5] == history.candlestick
    assert merged.candlestick[5:] == original.candlestick
    assert merged.candlestick[4].time == "2025-12-31"
    assert merged.is_time_ascending()
    assert merged.is_aligned()
    assert registry.get("1d") is merged


def test_prepend_mismatched_lengths_raises(registry):
    history = extend_backward("1d", registry.get("1d").earliest_epoch_ms(), 5, 1000)
    with pytest.raises(ValueError):
        registry.prepend("1d", history.candlestick, history.volume[:4])
    assert len(registry.get("1d")) == 30


def test_prepend_out_of_order_is_resorted(registry, caplog):
    """Si el llamador viola la precondición, el resultado se reordena (y se avisa)."""
    current = registry.get("1d")
    newer = extend_backward("1d", current.candlestick[-1].epoch_ms + 6 * DAY_MS, 5, 7000)

    merged = registry.prepend("1d", newer.candlestick, newer.volume)

    assert len(merged) == 35
    assert merged.is_time_ascending()
    assert merged.is_aligned()
    assert merged.candlestick[-1] == newer.candlestick[-1]
    assert "reordenando" in caplog.text


def test_replace_resets_load_count(registry):
    registry.get("4h")
    registry.next_load_count("4h")
    assert registry.next_load_count("4h") == 2

    registry.replace("4h", seed_window("4h", 100000, 10))
    assert registry.load_count("4h") == 0
    assert len(registry.get("4h")) == 10

    with pytest.raises(ValueError):
        registry.replace("4h", seed_window("1h", 100000, 10))


def test_discard_and_clear(registry):
    registry.get("1d")
    registry.get("4h")
    registry.discard("1d")
    assert not registry.has("1d")
    registry.clear()
    assert not registry.has("4h")


def test_get_ohlcv_data_frame(registry):
    df = registry.get_ohlcv_data("4h")

    assert isinstance(df, pd.DataFrame)
    assert len(df) == 60
    assert list(df.columns) == ["open", "high", "low", "close", "volume"]
    assert df.index.name == "timestamp"
    assert df.index.tz == timezone.utc
    assert df.index.is_monotonic_increasing
    assert df.index[0] == pd.Timestamp("2026-01-01 00:00:00", tz="UTC")
    assert (df["low"] <= df[["open", "close"]].min(axis=1)).all()
    assert (df["high"] >= df[["open", "close"]].max(axis=1)).all()


def test_get_ohlcv_data_empty_returns_none():
    registry = DatasetRegistry(window_counts={"1d": 0})
    assert registry.get_ohlcv_data("1d") is None
