import numpy as np
import pytest

import utils.config as config
from models.pv_inverter import QuDroopInverter


@pytest.mark.parametrize('voltage, expected', [
    (0.90, 0.33),
    (0.95, 0.33),
    (0.965, 0.165),
    (1.00, 0.0),
    (1.035, -0.165),
    (1.05, -0.33),
    (1.10, -0.33),
])
def test_q_setpoint_curve(voltage, expected):
    inverter = QuDroopInverter(200)
    assert inverter.q_setpoint_pu(voltage) == pytest.approx(expected)


def test_q_max_caps_the_curve():
    settings = dict(config.INVERTER_CONFIG, q_max=0.2)
    inverter = QuDroopInverter(200, settings)
    assert inverter.q_setpoint_pu(0.9) == pytest.approx(0.2)


def test_slow_step_reaches_setpoint():
    inverter = QuDroopInverter(200)
    assert inverter.step(1.05, dt=60) == pytest.approx(-66.0)


def test_first_order_response():
    inverter = QuDroopInverter(200)
    q = inverter.step(0.95, dt=0.5)
    assert q == pytest.approx(66.0 * (1 - np.exp(-1)))

    inverter.reset()
    assert inverter.q_pu == 0.0


def test_rejects_unordered_voltage_points():
    settings = dict(config.INVERTER_CONFIG, v_points=[0.95, 1.02, 0.98, 1.05])
    with pytest.raises(ValueError):
        QuDroopInverter(200, settings)
