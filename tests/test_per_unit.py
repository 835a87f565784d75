import numpy as np
import pytest

from src.per_unit import base_values, lines_to_pu, loads_to_pu, pv_to_pu, mean_rx_ratio


def test_base_values_uk_11kv():
    bases = base_values(11e3, 1e6)
    assert bases['z_base'] == pytest.approx(121.0)
    assert bases['i_base'] == pytest.approx(1e6 / (np.sqrt(3) * 11e3))
    assert bases['i_base'] == pytest.approx(52.486, rel=1e-4)


@pytest.mark.parametrize('v_base, s_base', [(0, 1e6), (11e3, -1)])
def test_base_values_rejects_non_positive(v_base, s_base):
    with pytest.raises(ValueError):
        base_values(v_base, s_base)


def test_lines_to_pu_uses_total_section_impedance(network_tables):
    _, line_data, _, _ = network_tables
    line_data = line_data.copy()
    line_data.loc[0, 'length_km'] = 2.0

    line_data_pu = lines_to_pu(line_data, 121.0)

    assert line_data_pu.r_pu.iloc[0] == pytest.approx(2 * 0.0922 / 121.0)
    assert line_data_pu.x_pu.iloc[0] == pytest.approx(2 * 0.0470 / 121.0)
    # input untouched
    assert 'r_pu' not in line_data.columns


def test_loads_and_pv_to_pu(network_tables):
    _, _, load_data, pv_data = network_tables

    load_data_pu = loads_to_pu(load_data, 1e6)
    pv_data_pu = pv_to_pu(pv_data, 1e6)

    assert load_data_pu.p_pu.iloc[0] == pytest.approx(0.1)
    assert load_data_pu.q_pu.iloc[0] == pytest.approx(0.06)
    assert load_data_pu.p_pu.sum() == pytest.approx(3.715)
    assert np.allclose(pv_data_pu.p_pu, 0.2)


def test_mean_rx_ratio(network_tables):
    _, line_data, _, _ = network_tables
    line_data_pu = lines_to_pu(line_data, 121.0)
    expected = np.mean(line_data.r_ohm_per_km / line_data.x_ohm_per_km)
    assert mean_rx_ratio(line_data_pu) == pytest.approx(expected)
