import logging
from pathlib import Path

import matplotlib.pyplot as plt
import numpy as np
import pandas as pd
from matplotlib.backends.backend_pdf import PdfPages

import utils.config as config
import utils.plot as plot
from src.initialise import load_parameters
from src.network_data import ieee33_uk_data, feeder_graph, downstream_buses
from utils.results import load_results, find_latest_results, save_summary

logger = logging.getLogger(__name__)


def steady_state_start(num_samples: int, fraction: float = config.STEADY_STATE_FRACTION) -> int:
    """0-based index of the first steady-state sample (last 10% of the record by default)."""
    if num_samples <= 0:
        raise ValueError('Result record is empty')
    # round half away from zero, then shift to 0-based
    first = int(np.floor(fraction * num_samples + 0.5))
    return min(max(first - 1, 0), num_samples - 1)


def voltage_analysis(results: dict, fraction: float = config.STEADY_STATE_FRACTION) -> dict:
    bus_voltages = np.asarray(results['bus_voltages'])
    start = steady_state_start(len(bus_voltages), fraction)
    v_steady = bus_voltages[start:].mean(axis=0)

    return {
        'steady_start': start,
        'v_steady': v_steady,
        'v_min': float(v_steady.min()),
        'v_min_node': int(np.argmin(v_steady)) + 1,
        'v_max': float(v_steady.max()),
        'v_max_node': int(np.argmax(v_steady)) + 1,
        'v_mean': float(v_steady.mean()),
        'max_deviation': float(np.max(np.abs(v_steady - 1.0))),
        'low_voltage_nodes': (np.flatnonzero(v_steady < config.V_LOW_ALARM) + 1).tolist(),
        'high_voltage_nodes': (np.flatnonzero(v_steady > config.V_HIGH_ALARM) + 1).tolist(),
    }


def loss_analysis(
    results: dict,
    line_data: pd.DataFrame,
    load_data: pd.DataFrame,
    fraction: float = config.STEADY_STATE_FRACTION,
) -> dict:
    """
    Steady-state line losses P = 3 * I^2 * R with R the total section resistance.
    """
    line_currents = np.asarray(results['line_currents'])
    if line_currents.shape[1] != len(line_data):
        raise ValueError(
            f'{line_currents.shape[1]} line currents recorded but {len(line_data)} lines in the network'
        )
    start = steady_state_start(len(line_currents), fraction)
    i_steady = np.abs(line_currents[start:]).mean(axis=0)

    r_ohm = (line_data.r_ohm_per_km * line_data.length_km).to_numpy()
    line_losses = 3 * i_steady ** 2 * r_ohm / 1000 # kW

    total_loss = float(line_losses.sum())
    total_load = float(load_data.p_kw.sum())
    worst = int(np.argmax(line_losses))

    line_table = pd.DataFrame({
        'line': np.arange(1, len(line_data) + 1),
        'from_bus': line_data.from_bus.to_numpy(),
        'to_bus': line_data.to_bus.to_numpy(),
        'current_a': i_steady,
        'loss_kw': line_losses,
    })

    return {
        'line_losses': line_losses,
        'total_loss': total_loss,
        'total_load': total_load,
        'loss_percentage': total_loss / total_load * 100 if total_load > 0 else float('nan'),
        'max_loss': float(line_losses[worst]),
        'max_loss_line': (int(line_data.from_bus.iloc[worst]), int(line_data.to_bus.iloc[worst])),
        'line_table': line_table,
    }


def branch_flow_analysis(line_data: pd.DataFrame, load_data: pd.DataFrame) -> dict:
    """Active power carried by each branch as the sum of the loads it supplies."""
    graph = feeder_graph(line_data)
    load_by_bus = load_data.groupby('bus').p_kw.sum()

    branch_flow = np.zeros(len(line_data))
    for i, (_, line) in enumerate(line_data.iterrows()):
        downstream = downstream_buses(graph, int(line.from_bus), int(line.to_bus))
        branch_flow[i] = load_by_bus[load_by_bus.index.isin(downstream)].sum()

    worst = int(np.argmax(branch_flow))
    return {
        'branch_flow': branch_flow,
        'max_flow': float(branch_flow[worst]),
        'max_flow_line': (int(line_data.from_bus.iloc[worst]), int(line_data.to_bus.iloc[worst])),
        'mean_flow': float(branch_flow.mean()),
        'line_table': pd.DataFrame({
            'line': np.arange(1, len(line_data) + 1),
            'from_bus': line_data.from_bus.to_numpy(),
            'to_bus': line_data.to_bus.to_numpy(),
            'p_kw': branch_flow,
        }),
    }


def _network_tables(parameter_file) -> tuple:
    try:
        params = load_parameters(parameter_file)
        return params['line_data'], params['load_data']
    except FileNotFoundError:
        logger.warning(f'{parameter_file} not found, using the default IEEE 33-bus tables')
        _, line_data, load_data, _ = ieee33_uk_data()
        return line_data, load_data


def _log_voltage_report(voltage: dict) -> None:
    logger.info('[1] Voltage Analysis')
    logger.info('-' * 40)
    logger.info(f'Minimum Voltage: {voltage["v_min"]:.4f} p.u. (node {voltage["v_min_node"]})')
    logger.info(f'Maximum voltage: {voltage["v_max"]:.4f} p.u. (node {voltage["v_max_node"]})')
    logger.info(f'Average voltage: {voltage["v_mean"]:.4f} p.u.')
    logger.info(f'Voltage deviation: {voltage["max_deviation"]:.4f} p.u.')
    if voltage['low_voltage_nodes']:
        logger.info(f'Low Voltage Node (<{config.V_LOW_ALARM} p.u.): {voltage["low_voltage_nodes"]}')
    else:
        logger.info('All node voltages are within the normal range')
    if voltage['high_voltage_nodes']:
        logger.info(f'High Voltage Node (>{config.V_HIGH_ALARM} p.u.): {voltage["high_voltage_nodes"]}')


def _log_loss_report(losses: dict) -> None:
    logger.info('[2] Power Loss Analysis')
    logger.info('-' * 40)
    logger.info(f'Total Power Loss: {losses["total_loss"]:.2f} kW')
    logger.info(f'Total Load Power: {losses["total_load"]:.2f} kW')
    logger.info(f'Loss Ratio: {losses["loss_percentage"]:.2f}%')
    from_bus, to_bus = losses['max_loss_line']
    logger.info(f'Maximum line loss: {losses["max_loss"]:.2f} kW (Route {from_bus}-{to_bus})')


def _log_flow_report(flow: dict) -> None:
    logger.info('[3] Trend Analysis')
    logger.info('-' * 40)
    from_bus, to_bus = flow['max_flow_line']
    logger.info(f'Maximum branch power flow: {flow["max_flow"]:.2f} kW (Route {from_bus}-{to_bus})')
    logger.info(f'Average Branch Power Flow: {flow["mean_flow"]:.2f} kW')


def analyze_results(
    result_file: str = None,
    results_dir: str = config.RESULTS_DIR,
    parameter_file: str = config.PARAMETER_FILE,
    show: bool = False,
    export: bool = False,
    output_dir: str = None,
) -> dict:
    """
    Detailed analysis and visualisation of one simulation record.
    Args:
        result_file (str): Record to analyse, the newest one in results_dir when None.
        show (bool): Open the figures interactively.
        export (bool): Write PNGs, a PDF report and an Excel summary to output_dir.
    Returns:
        dict: voltage/losses/branch_flow summaries plus the figures and result file.
    """
    if result_file is None:
        result_file = find_latest_results(results_dir)
        logger.info(f'Automatically load the latest results: {Path(result_file).name}')

    results = load_results(result_file)
    line_data, load_data = _network_tables(parameter_file)

    logger.info('=' * 40)
    logger.info('  IEEE 33-Node System Result Analysis')
    logger.info('=' * 40)

    summary = {'result_file': Path(result_file), 'figures': {}}

    if 'bus_voltages' in results:
        # time only feeds the history panel and the heatmap axis
        time = results.get('time')
        voltage = voltage_analysis(results)
        summary['voltage'] = voltage
        _log_voltage_report(voltage)
        summary['figures']['voltage'] = plot.plot_voltage_analysis(
            time, results['bus_voltages'], voltage['v_steady']
        )
        summary['figures']['voltage_heatmap'] = plot.plot_voltage_heatmap(
            time, results['bus_voltages']
        )
        summary['figures']['topology'] = plot.plot_feeder_voltages(line_data, voltage['v_steady'])

    if 'line_currents' in results and 'power_flow' in results:
        losses = loss_analysis(results, line_data, load_data)
        summary['losses'] = losses
        _log_loss_report(losses)
        summary['figures']['losses'] = plot.plot_loss_analysis(losses['line_losses'])

    flow = branch_flow_analysis(line_data, load_data)
    summary['branch_flow'] = flow
    _log_flow_report(flow)
    summary['figures']['branch_flow'] = plot.plot_branch_flow(flow['branch_flow'])

    logger.info('=' * 40)
    logger.info(' Generate Report')
    logger.info('=' * 40)
    logger.info(f'{len(summary["figures"])} charts generated')
    logger.info(f'Detailed data has been saved in: {result_file}')

    if export:
        output_dir = Path(result_file).parent if output_dir is None else Path(output_dir)
        summary['report_files'] = export_report(summary, output_dir)

    if show:
        plt.show()
    else:
        plt.close('all')

    return summary


def export_report(summary: dict, output_dir) -> list:
    """Writes each figure as PNG, all of them into one PDF and the tables into Excel."""
    output_dir = Path(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)
    stem = Path(summary['result_file']).stem.replace('simulation_results', 'analysis')

    written = []
    for name, fig in summary['figures'].items():
        png = output_dir / f'{stem}_{name}.png'
        fig.savefig(png, dpi=150, bbox_inches='tight')
        written.append(png)

    pdf = output_dir / f'{stem}_report.pdf'
    with PdfPages(pdf) as pages:
        for fig in summary['figures'].values():
            pages.savefig(fig, bbox_inches='tight')
    written.append(pdf)

    written.append(save_summary(summary, output_dir / f'{stem}_summary.xlsx'))
    logger.info(f'Report exported to {output_dir}')
    return written
