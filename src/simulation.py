import logging
from typing import Dict, List

import numpy as np
import pandas as pd
import pandapower as pp
from pandapower.powerflow import LoadflowNotConverged

import utils.config as config
from models.oltc import OltcController
from models.pv_inverter import QuDroopInverter
from src.network_data import build_network

logger = logging.getLogger(__name__)

OLTC_CASES = ('oltc_only', 'coordinated')
QU_CASES = ('coordinated',)


def _profile_series(profile: pd.DataFrame, column: str, minutes: np.ndarray) -> np.ndarray:
    """Samples a 1-minute profile column at arbitrary minutes of the day."""
    ordered = profile.sort_values('time')
    values = np.interp(
        minutes % config.MINUTES_PER_DAY,
        ordered.time.to_numpy(dtype=float),
        ordered[column].to_numpy(dtype=float),
    )
    return np.maximum(values, 0)


def load_scaling(load_profiles: pd.DataFrame, minutes: np.ndarray) -> tuple:
    """Profile normalised to its daily maximum, applied to every nominal load."""
    p = _profile_series(load_profiles, 'p_kw', minutes)
    q = _profile_series(load_profiles, 'q_kvar', minutes)
    p_peak = load_profiles.p_kw.max()
    q_peak = load_profiles.q_kvar.max()
    p_scale = p / p_peak if p_peak > 0 else np.zeros_like(p)
    q_scale = q / q_peak if q_peak > 0 else np.zeros_like(q)
    return p_scale, q_scale


def pv_scaling(pv_profiles: pd.DataFrame, minutes: np.ndarray, rated_kw: float = config.PV_RATED_KW) -> np.ndarray:
    return np.clip(_profile_series(pv_profiles, 'p_kw', minutes) / rated_kw, 0, 1)


def run_case(
    case: str,
    params: dict,
    step_s: float = None,
    stop_time: float = None,
) -> Dict[str, np.ndarray]:
    """
    Quasi-static daily run of one control scenario with pandapower.
    Args:
        case (str): 'no_control', 'oltc_only' or 'coordinated'.
        params (dict): Output of init_voltage_control / load_parameters.
        step_s (float): Time step in seconds, defaults to sim_params['step_s'].
        stop_time (float): End of the run in seconds, defaults to sim_params['stop_time'].
    Returns:
        dict: time, bus_voltages, line_currents, power_flow, line_losses_kw,
        tap_positions, pv_p_kw, pv_q_kvar and case.
    """
    if case not in config.CASES:
        raise ValueError(f'Unknown case {case!r}, expected one of {list(config.CASES)}')

    sim_params = params['sim_params']
    step_s = sim_params.get('step_s', config.SIM_PARAMS['step_s']) if step_s is None else step_s
    stop_time = sim_params['stop_time'] if stop_time is None else stop_time
    if step_s <= 0:
        raise ValueError(f'Time step must be positive, got {step_s}')

    net = build_network(
        params['bus_data'], params['line_data'], params['load_data'], params['pv_data'],
        s_base=params['s_base'], freq_hz=params['freq'],
    )
    pv_data = params['pv_data']

    oltc = OltcController(params['oltc_config']) if case in OLTC_CASES else None
    inverters: List[QuDroopInverter] = []
    if case in QU_CASES:
        inverters = [
            QuDroopInverter(pv.p_kw, params['inverter_config'], name=f'PV {int(pv.bus)}')
            for _, pv in pv_data.iterrows()
        ]

    times = np.arange(0, stop_time, step_s, dtype=float)
    minutes = times / 60
    p_scale, q_scale = load_scaling(params['load_profiles'], minutes)
    pv_fraction = pv_scaling(params['pv_profiles'], minutes)

    n_steps, n_bus, n_line, n_pv = len(times), len(net.bus), len(net.line), len(net.sgen)
    bus_voltages = np.zeros((n_steps, n_bus))
    line_currents = np.zeros((n_steps, n_line))
    power_flow = np.zeros((n_steps, n_line))
    line_losses = np.zeros((n_steps, n_line))
    tap_positions = np.zeros(n_steps, dtype=int)
    pv_p = np.zeros((n_steps, n_pv))
    pv_q = np.zeros((n_steps, n_pv))

    pv_bus_idx = (pv_data.bus.to_numpy(dtype=int) - 1)
    monitored_idx = int(params['oltc_config']['monitored_bus']) - 1
    source_vm_pu = config.SOURCE_VOLTAGE_PU
    voltages = np.ones(n_bus)

    logger.info(f'Running {config.CASES[case]}: {n_steps} steps of {step_s:g}s')
    for k, t in enumerate(times):
        net.load.p_mw = net.load.nominal_p_mw * p_scale[k]
        net.load.q_mvar = net.load.nominal_q_mvar * q_scale[k]
        net.sgen.p_mw = net.sgen.rated_p_mw * pv_fraction[k]

        if inverters:
            q_kvar = [inv.step(voltages[bus], step_s) for inv, bus in zip(inverters, pv_bus_idx)]
            net.sgen.q_mvar = np.array(q_kvar) / 1e3

        tap = oltc.tap if oltc is not None else 0
        net.ext_grid.vm_pu = source_vm_pu * (oltc.ratio if oltc is not None else 1.0)

        try:
            pp.runpp(net, init='results' if k > 0 else 'auto')
        except LoadflowNotConverged as e:
            raise RuntimeError(f'Power flow did not converge at t={t:.0f}s ({case})') from e

        voltages = net.res_bus.vm_pu.to_numpy()
        bus_voltages[k] = voltages
        line_currents[k] = net.res_line.i_ka.to_numpy() * 1e3
        power_flow[k] = net.res_line.p_from_mw.to_numpy() * 1e3
        line_losses[k] = net.res_line.pl_mw.to_numpy() * 1e3
        tap_positions[k] = tap
        pv_p[k] = net.res_sgen.p_mw.to_numpy() * 1e3
        pv_q[k] = net.res_sgen.q_mvar.to_numpy() * 1e3

        if oltc is not None:
            oltc.step(t, voltages[monitored_idx])

    logger.info(
        f'{config.CASES[case]} finished: V range {bus_voltages.min():.4f} - {bus_voltages.max():.4f} pu'
    )
    if oltc is not None:
        logger.info(
            f'OLTC operations: {oltc.operations} ({oltc.lifetime_used * 100:.4f}% of rated lifetime)'
        )

    return {
        'case': case,
        'time': times,
        'bus_voltages': bus_voltages,
        'line_currents': line_currents,
        'power_flow': power_flow,
        'line_losses_kw': line_losses,
        'tap_positions': tap_positions,
        'pv_p_kw': pv_p,
        'pv_q_kvar': pv_q,
    }


def run_cases(cases: list, params: dict, step_s: float = None, stop_time: float = None) -> dict:
    return {case: run_case(case, params, step_s, stop_time) for case in cases}
