import json
import logging
from io import StringIO
from pathlib import Path

import numpy as np
import pandas as pd

import utils.config as config
from src.network_data import ieee33_uk_data
from src.per_unit import base_values, lines_to_pu, loads_to_pu, pv_to_pu, mean_rx_ratio
from src.profiles import load_refit_data

logger = logging.getLogger(__name__)

TABLES = [
    'bus_data', 'line_data', 'load_data', 'pv_data',
    'line_data_pu', 'load_data_pu', 'pv_data_pu',
    'load_profiles', 'pv_profiles',
]
SCALARS = [
    'v_base', 's_base', 'z_base', 'i_base', 'freq',
    'v_min', 'v_max', 'v_statutory_min', 'v_statutory_max',
]
CONFIGS = ['oltc_config', 'inverter_config', 'sim_params']


def save_parameters(params: dict, parameter_file: str = config.PARAMETER_FILE) -> Path:
    """Writes tables as JSON, scalars as floats and controller settings as JSON into one npz."""
    path = Path(parameter_file)
    path.parent.mkdir(parents=True, exist_ok=True)

    payload = {}
    for name in TABLES:
        payload[name] = np.array(params[name].to_json(orient='split'))
    for name in SCALARS:
        payload[name] = np.array(float(params[name]))
    for name in CONFIGS:
        payload[name] = np.array(json.dumps(params[name]))

    np.savez(path, **payload)
    return path


def load_parameters(parameter_file: str = config.PARAMETER_FILE) -> dict:
    path = Path(parameter_file)
    if not path.exists():
        raise FileNotFoundError(f'Parameter file {path} not found, run the initialisation first')

    params = {}
    with np.load(path, allow_pickle=False) as archive:
        for name in TABLES:
            params[name] = pd.read_json(StringIO(str(archive[name])), orient='split', convert_dates=False)
        for name in SCALARS:
            params[name] = float(archive[name])
        for name in CONFIGS:
            params[name] = json.loads(str(archive[name]))
    return params


def init_voltage_control(
    date_str: str = config.REFIT_DATE,
    parameter_file: str = config.PARAMETER_FILE,
    data_folder: str = config.REFIT_DATA_FOLDER,
    pv_buses: list = None,
    save: bool = True,
) -> dict:
    """
    Initialises the IEEE 33-bus UK system: topology, per-unit values,
    REFIT profiles and the controller settings.
    Returns:
        dict: every parameter, also written to parameter_file when save is set.
    """
    logger.info('=' * 40)
    logger.info(' UK 11kV Distribution Network Voltage Control Simulation Initialization')
    logger.info(' Based on the IEEE 33-bus + REFIT dataset')
    logger.info('=' * 40)

    logger.info('[1/7] Load system topology and parameters...')
    bus_data, line_data, load_data, pv_data = ieee33_uk_data(pv_buses=pv_buses)
    logger.info(f'  Bus: {len(bus_data)}, Line: {len(line_data)}, PV Node: {len(pv_data)}')

    logger.info('[2/7] Set baseline value (UK 11kV standard)...')
    bases = base_values(config.V_BASE, config.S_BASE)
    logger.info(f'  Reference Voltage: {bases["v_base"] / 1e3:.2f} kV')
    logger.info(f'  Rated Power: {bases["s_base"] / 1e6:.2f} MVA')
    logger.info(f'  Voltage range: {config.V_MIN:.2f} - {config.V_MAX:.2f} pu')

    logger.info('[3/7] Per-unit parameter...')
    line_data_pu = lines_to_pu(line_data, bases['z_base'])
    load_data_pu = loads_to_pu(load_data, bases['s_base'])
    pv_data_pu = pv_to_pu(pv_data, bases['s_base'])
    logger.info(f'  Average R/X ratio: {mean_rx_ratio(line_data_pu):.3f}')

    logger.info('[4/7] Load REFIT project data...')
    load_profiles, pv_profiles = load_refit_data(date_str, data_folder)
    logger.info(f'  Load data points: {len(load_profiles)} (24h, 1min resolution)')
    logger.info(f'  PV Peak Irradiance: {pv_profiles.irradiance.max():.0f} W/m2')

    logger.info('[5/7] Configure OLTC controller...')
    oltc_config = dict(config.OLTC_CONFIG)
    tap_low, tap_high = oltc_config['tap_range']
    logger.info(f'  Gear range: {tap_low} ~ +{tap_high} ({oltc_config["tap_step"] * 100:.2f}% per gear)')
    logger.info(
        f'  Trigger Voltage: {oltc_config["v_trigger_low"]:.3f} / {oltc_config["v_trigger_high"]:.3f} pu'
    )

    logger.info('[6/7] Configure PV inverter Q(U) curve...')
    inverter_config = dict(config.INVERTER_CONFIG)
    logger.info(
        f'  Q range: +/-{inverter_config["q_max"]:.2f} pu '
        f'(+/-{inverter_config["q_max"] * config.PV_RATED_KW:.0f} kVAr)'
    )
    logger.info(f'  Droop Slope: {inverter_config["droop_slope"]:.2f} pu/pu')

    logger.info('[7/7] Configure simulation environment...')
    sim_params = dict(config.SIM_PARAMS)
    logger.info(f'  Simulation duration: {sim_params["stop_time"]} s (24 hours)')
    logger.info(f'  Sampling time: {sim_params["sample_time"]} s')
    logger.info(f'  Solver: {sim_params["solver"]}')

    params = {
        'bus_data': bus_data,
        'line_data': line_data,
        'load_data': load_data,
        'pv_data': pv_data,
        'line_data_pu': line_data_pu,
        'load_data_pu': load_data_pu,
        'pv_data_pu': pv_data_pu,
        'load_profiles': load_profiles,
        'pv_profiles': pv_profiles,
        'v_base': bases['v_base'],
        's_base': bases['s_base'],
        'z_base': bases['z_base'],
        'i_base': bases['i_base'],
        'freq': config.FREQ_HZ,
        'v_min': config.V_MIN,
        'v_max': config.V_MAX,
        'v_statutory_min': config.V_STATUTORY_MIN,
        'v_statutory_max': config.V_STATUTORY_MAX,
        'oltc_config': oltc_config,
        'inverter_config': inverter_config,
        'sim_params': sim_params,
    }

    if save:
        path = save_parameters(params, parameter_file)
        logger.info(f'Parameters saved to {path}')

    log_system_statistics(params)
    return params


def system_statistics(params: dict) -> dict:
    load_data, pv_data = params['load_data'], params['pv_data']
    total_p = load_data.p_kw.sum()
    total_pv = pv_data.p_kw.sum()
    return {
        'total_p_kw': total_p,
        'total_q_kvar': load_data.q_kvar.sum(),
        'total_pv_kw': total_pv,
        'penetration_pct': total_pv / total_p * 100,
        'peak_irradiance': params['pv_profiles'].irradiance.max(),
    }


def log_system_statistics(params: dict) -> None:
    stats = system_statistics(params)
    logger.info('=' * 40)
    logger.info('  System Statistics')
    logger.info('=' * 40)
    logger.info(
        f'Total Load Capacity: {stats["total_p_kw"] / 1000:.2f} MW + j{stats["total_q_kvar"] / 1000:.2f} MVAr'
    )
    logger.info(f'Total PV Capacity: {stats["total_pv_kw"] / 1000:.2f} MW')
    logger.info(f'PV penetration rate: {stats["penetration_pct"]:.1f}%')
    logger.info(f'Peak irradiance: {stats["peak_irradiance"]:.0f} W/m2')
    logger.info('=' * 40)
    logger.info('  Initialization complete')
    logger.info('  The following simulation scenarios can be run:')
    for case, description in config.CASES.items():
        logger.info(f'  - {description} (simulate --case {case})')
    logger.info('=' * 40)
