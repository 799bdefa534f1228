"""Tests for the engine configuration object and its TOML loader."""

import pytest

from config import EngineConfig, load_config


def test_defaults():
    config = EngineConfig(n_years=3)

    assert config.use_benders
    assert config.max_iterations == 1000
    assert config.underestimate_tolerance == 0.999
    assert config.infeasible_objective == 1.0e30
    assert config.objective_count == 1


def test_objective_count_includes_resiliency():
    config = EngineConfig(n_years=3, n_events=2, sustainability_objectives=['CO2', 'NOx'],
                          sustainability_metrics=['CO2', 'NOx'])

    assert config.objective_count == 4
    assert config.sustainability_objectives == ('CO2', 'NOx')
    assert config.is_emission_objective(0)
    assert not config.is_emission_objective(1)


def test_config_is_frozen():
    config = EngineConfig(n_years=3)

    with pytest.raises(AttributeError):
        config.n_years = 4


@pytest.mark.parametrize("settings, message", [
    ({'n_years': 0}, "n_years"),
    ({'n_years': 2, 'underestimate_tolerance': 1.5}, "underestimate_tolerance"),
    ({'n_years': 2, 'max_iterations': 0}, "max_iterations"),
    ({'n_years': 2, 'n_events': -1}, "n_events"),
    ({'n_years': 2, 'sustainability_objectives': ['CO2']}, "sustainability metric"),
])
def test_invalid_settings(settings, message):
    with pytest.raises(ValueError, match=message):
        EngineConfig(**settings)


def test_verbose_follows_output_level():
    assert EngineConfig(n_years=1, output_level=0).verbose
    assert not EngineConfig(n_years=1, output_level=2).verbose


def test_load_config(tmp_path):
    path = tmp_path / 'engine.toml'
    path.write_text(
        '[engine]\n'
        'n_years = 5\n'
        'use_benders = false\n'
        'n_events = 1\n'
        'sustainability_objectives = ["EmCO2"]\n'
        'sustainability_metrics = ["EmCO2", "NOx"]\n'
        'max_iterations = 50\n'
    )

    config = load_config(path)

    assert config.n_years == 5
    assert not config.use_benders
    assert config.sustainability_metrics == ('EmCO2', 'NOx')
    assert config.max_iterations == 50
    assert config.objective_count == 3


def test_load_config_rejects_unknown_keys(tmp_path):
    path = tmp_path / 'engine.toml'
    path.write_text('[engine]\nn_years = 2\nhorizon = 3\n')

    with pytest.raises(ValueError, match="horizon"):
        load_config(path)
