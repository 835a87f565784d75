import numpy as np
import pytest

from src.analysis import (
    analyze_results,
    branch_flow_analysis,
    loss_analysis,
    steady_state_start,
    voltage_analysis,
)
from utils.results import save_results


@pytest.mark.parametrize('num_samples, expected', [(10, 8), (1440, 1295), (1, 0)])
def test_steady_state_start(num_samples, expected):
    assert steady_state_start(num_samples) == expected


def test_steady_state_start_empty():
    with pytest.raises(ValueError):
        steady_state_start(0)


def test_voltage_analysis(fake_results):
    voltage = voltage_analysis(fake_results)

    assert voltage['v_min'] == pytest.approx(0.93)
    assert voltage['v_min_node'] == 18
    assert voltage['v_max'] == pytest.approx(1.06)
    assert voltage['v_max_node'] == 25
    assert voltage['max_deviation'] == pytest.approx(0.07)
    assert voltage['low_voltage_nodes'] == [18, 33]
    assert voltage['high_voltage_nodes'] == [25]


def test_voltage_analysis_uses_steady_window(fake_results):
    fake_results['bus_voltages'][:8, 17] = 0.5
    voltage = voltage_analysis(fake_results)
    assert voltage['v_steady'][17] == pytest.approx(0.93)


def test_loss_analysis(fake_results, network_tables):
    _, line_data, load_data, _ = network_tables
    losses = loss_analysis(fake_results, line_data, load_data)

    # 3 * (100 A)^2 * R / 1000
    assert losses['line_losses'][0] == pytest.approx(30 * 0.0922)
    assert losses['total_loss'] == pytest.approx(30 * line_data.r_ohm_per_km.sum())
    assert losses['total_load'] == pytest.approx(3715)
    assert losses['loss_percentage'] == pytest.approx(losses['total_loss'] / 3715 * 100)
    assert losses['max_loss_line'] == (19, 20)


def test_loss_analysis_shape_mismatch(fake_results, network_tables):
    _, line_data, load_data, _ = network_tables
    fake_results['line_currents'] = fake_results['line_currents'][:, :5]
    with pytest.raises(ValueError):
        loss_analysis(fake_results, line_data, load_data)


def test_branch_flow_analysis(network_tables):
    _, line_data, load_data, _ = network_tables
    flow = branch_flow_analysis(line_data, load_data)

    assert flow['branch_flow'][0] == pytest.approx(3715)
    assert flow['max_flow_line'] == (1, 2)
    assert flow['branch_flow'][-1] == pytest.approx(60)
    assert flow['branch_flow'][17] == pytest.approx(360)
    assert flow['mean_flow'] == pytest.approx(flow['branch_flow'].mean())


def test_analyze_latest_results_with_export(fake_results, tmp_path):
    results_dir = tmp_path / 'results'
    save_results(fake_results, results_dir)

    summary = analyze_results(
        results_dir=results_dir,
        parameter_file=tmp_path / 'missing.npz',
        export=True,
    )

    assert summary['voltage']['v_min_node'] == 18
    assert summary['losses']['total_load'] == pytest.approx(3715)
    assert set(summary['figures']) == {'voltage', 'voltage_heatmap', 'topology', 'losses', 'branch_flow'}
    for path in summary['report_files']:
        assert path.exists()
    assert any(path.suffix == '.pdf' for path in summary['report_files'])
    assert any(path.suffix == '.xlsx' for path in summary['report_files'])


def test_analyze_without_currents_skips_losses(fake_results, tmp_path):
    del fake_results['line_currents']
    path = save_results(fake_results, tmp_path)

    summary = analyze_results(path, parameter_file=tmp_path / 'missing.npz')

    assert 'losses' not in summary
    assert 'voltage' in summary
    assert 'branch_flow' in summary


def test_analyze_without_time_keeps_voltage_analysis(fake_results, tmp_path):
    del fake_results['time']
    path = save_results(fake_results, tmp_path)

    summary = analyze_results(path, parameter_file=tmp_path / 'missing.npz')

    assert summary['voltage']['v_min_node'] == 18
    assert 'voltage' in summary['figures']
    assert 'voltage_heatmap' in summary['figures']
