from types import SimpleNamespace

import pytest

from conftest import LMKT, MDAI, TREASURY
from config.indexer_config import DEFAULT_INTERVALS, IndexerConfig
from core.domain.errors import ConfigurationError


def _settings(**overrides):
    values = dict(
        TREASURY_ADDRESS=TREASURY.upper().replace("0X", "0x"),
        LMKT_ADDRESS=LMKT,
        COLLATERAL_ADDRESS=MDAI,
        CANDLE_INTERVALS="60,300",
        BACKFILL_MAX_STEPS=50,
        FUTURE_TOLERANCE_S=120,
        RETRY_MAX_ATTEMPTS=4,
        RETRY_INITIAL_DELAY_MS=250,
        RETRY_BACKOFF_MULTIPLIER=3.0,
    )
    values.update(overrides)
    return SimpleNamespace(**values)


def test_from_settings():
    cfg = IndexerConfig.from_settings(_settings())

    assert cfg.treasury_address == TREASURY
    assert cfg.intervals == (60, 300)
    assert cfg.backfill_max_steps == 50
    assert cfg.future_tolerance_s == 120
    assert cfg.retry_policy.max_attempts == 4
    assert cfg.retry_policy.delays_ms() == [250.0, 750.0, 2250.0]


def test_empty_interval_list_falls_back_to_defaults():
    cfg = IndexerConfig.from_settings(_settings(CANDLE_INTERVALS=""))
    assert cfg.intervals == DEFAULT_INTERVALS


@pytest.mark.parametrize(
    "overrides",
    [
        {"TREASURY_ADDRESS": ""},
        {"COLLATERAL_ADDRESS": "  "},
        {"CANDLE_INTERVALS": "60,abc"},
        {"CANDLE_INTERVALS": "60,-5"},
        {"RETRY_MAX_ATTEMPTS": 0},
    ],
)
def test_invalid_settings_raise_configuration_error(overrides):
    with pytest.raises(ConfigurationError):
        IndexerConfig.from_settings(_settings(**overrides))


def test_config_is_immutable():
    cfg = IndexerConfig(treasury_address=TREASURY, lmkt_address=LMKT, collateral_address=MDAI)
    with pytest.raises(Exception):
        cfg.treasury_address = MDAI
