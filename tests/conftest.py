import matplotlib

matplotlib.use('Agg')

import numpy as np
import pytest

from src.initialise import init_voltage_control
from src.network_data import ieee33_uk_data


@pytest.fixture
def network_tables():
    return ieee33_uk_data()


@pytest.fixture
def params(tmp_path):
    """Synthetic-data parameters, nothing written to disk."""
    return init_voltage_control(
        parameter_file=tmp_path / 'params.npz',
        data_folder=tmp_path / 'no_refit_here',
        save=False,
    )


@pytest.fixture
def fake_results():
    """Hand-built record: 10 samples, flat 1.0 pu except a sagging feeder end."""
    n_steps = 10
    voltages = np.ones((n_steps, 33))
    voltages[:, 17] = 0.93
    voltages[:, 32] = 0.94
    voltages[:, 24] = 1.06
    return {
        'case': 'no_control',
        'time': np.arange(n_steps) * 60.0,
        'bus_voltages': voltages,
        'line_currents': np.full((n_steps, 32), 100.0),
        'power_flow': np.full((n_steps, 32), 50.0),
    }
