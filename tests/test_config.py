import pytest

from caterpillar.config import SSAConfig
from caterpillar.exceptions import InvalidConfiguration


def test_defaults_follow_demand_forecasting_setup():
    config = SSAConfig()
    assert (config.window_size, config.series_length, config.horizon) == (7, 30, 7)
    assert config.confidence_level == 0.95
    assert config.training_length == 30
    assert config.effective_max_rank == 6


def test_training_length_uses_train_size():
    assert SSAConfig(train_size=365).training_length == 365


@pytest.mark.parametrize("kwargs", [
    {"window_size": 1},
    {"window_size": 7, "series_length": 7},
    {"train_size": 10},
    {"horizon": 0},
    {"confidence_level": 0.0},
    {"confidence_level": 1.0},
    {"rank": 0},
    {"rank": 7},
    {"max_rank": 9},
    {"energy_threshold": 0.0},
    {"energy_threshold": 1.5},
    {"degeneracy_tolerance": 0.0},
    {"eigen_tolerance": 0.0},
    {"max_sweeps": 0},
])
def test_invalid_configuration(kwargs):
    with pytest.raises(InvalidConfiguration):
        SSAConfig(**kwargs)


def test_json_roundtrip():
    config = SSAConfig(window_size=5, series_length=20, train_size=40, rank=2,
                       confidence_level=0.8)
    assert SSAConfig.from_json(config.to_json()) == config


def test_from_json_rejects_garbage():
    with pytest.raises(InvalidConfiguration):
        SSAConfig.from_json("not json")
    with pytest.raises(InvalidConfiguration):
        SSAConfig.from_json('{"unknown_field": 1}')
    with pytest.raises(InvalidConfiguration):
        SSAConfig.from_json("[1, 2]")
