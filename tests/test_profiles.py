import logging

import numpy as np
import pandas as pd
import pytest

import utils.config as config
from src.profiles import (
    generate_synthetic_load,
    generate_synthetic_pv,
    load_refit_data,
    pv_power_kw,
)

DATE = '2014-07-24'


def _timestamps(n):
    return pd.date_range(DATE, periods=n, freq='min').strftime('%Y-%m-%d %H:%M:%S')


def test_pv_power_formula_and_clipping():
    assert pv_power_kw(1000, 25) == pytest.approx(0.18 * 1111)
    assert pv_power_kw(1000, 35) == pytest.approx(0.18 * 1111 * (1 - 0.04))
    assert pv_power_kw(1200, 0) == pytest.approx(config.PV_RATED_KW)
    assert pv_power_kw(-5, 25) == 0


def test_synthetic_load_shape():
    load = generate_synthetic_load(np.random.default_rng(1))

    assert list(load.columns) == ['time', 'p_kw', 'q_kvar']
    assert len(load) == config.MINUTES_PER_DAY
    assert load.time.iloc[-1] == 1439
    # evening peak dominates the morning one
    assert load.p_kw.iloc[19 * 60 - 30:19 * 60 + 30].mean() > load.p_kw.iloc[8 * 60 - 30:8 * 60 + 30].mean()
    assert load.p_kw.iloc[:60].mean() == pytest.approx(50, rel=0.1)


def test_synthetic_load_is_reproducible_with_seed():
    first = generate_synthetic_load(np.random.default_rng(7))
    second = generate_synthetic_load(np.random.default_rng(7))
    pd.testing.assert_frame_equal(first, second)


def test_synthetic_pv_day():
    pv = generate_synthetic_pv()

    assert list(pv.columns) == ['time', 'irradiance', 'temperature', 'p_kw']
    assert len(pv) == config.MINUTES_PER_DAY
    assert (pv.irradiance.iloc[:6 * 60] == 0).all()
    assert (pv.irradiance.iloc[20 * 60 + 1:] == 0).all()
    assert pv.irradiance.iloc[13 * 60] == pytest.approx(900)
    # cloud passing around 14:10
    assert pv.irradiance.iloc[852] < 0.5 * pv.irradiance.iloc[840]
    assert pv.p_kw.max() <= config.PV_RATED_KW
    assert pv.p_kw.min() >= 0


def test_missing_refit_files_fall_back_to_synthetic(tmp_path, caplog):
    with caplog.at_level(logging.WARNING):
        load, pv = load_refit_data(DATE, tmp_path)

    assert len(load) == config.MINUTES_PER_DAY
    assert len(pv) == config.MINUTES_PER_DAY
    assert 'generating simulated data' in caplog.text


def test_refit_files_are_converted(tmp_path):
    n = 120
    pd.DataFrame({
        'Timestamp': _timestamps(n),
        'ActivePower': np.full(n, 1000.0),
        'ReactivePower': np.full(n, 1000.0),
    }).to_csv(tmp_path / f'House_1_{DATE}.csv', index=False)
    pd.DataFrame({
        'Timestamp': _timestamps(n),
        'Irradiance': np.full(n, 500.0),
        'Temperature': np.full(n, 25.0),
    }).to_csv(tmp_path / f'Solar_{DATE}.csv', index=False)

    load, pv = load_refit_data(DATE, tmp_path)

    assert len(load) == n
    assert load.time.tolist() == list(range(n))
    assert np.allclose(load.p_kw, 0.85)
    assert np.allclose(load.q_kvar, 0.75)
    assert np.allclose(pv.p_kw, 0.18 * 1111 * 500 / 1000)


def test_refit_load_without_solar_file_uses_synthetic_pv(tmp_path):
    pd.DataFrame({
        'Timestamp': _timestamps(10),
        'ActivePower': np.full(10, 2000.0),
        'ReactivePower': np.zeros(10),
    }).to_csv(tmp_path / f'House_1_{DATE}.csv', index=False)

    load, pv = load_refit_data(DATE, tmp_path)

    assert len(load) == 10
    assert len(pv) == config.MINUTES_PER_DAY


def test_refit_file_missing_columns(tmp_path):
    pd.DataFrame({
        'Timestamp': _timestamps(5),
        'ActivePower': np.ones(5),
    }).to_csv(tmp_path / f'House_1_{DATE}.csv', index=False)

    with pytest.raises(ValueError, match='ReactivePower'):
        load_refit_data(DATE, tmp_path)
