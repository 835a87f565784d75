import logging
from pathlib import Path
from typing import Tuple

import numpy as np
import pandas as pd

import utils.config as config

logger = logging.getLogger(__name__)

LOAD_COLUMNS = ['Timestamp', 'ActivePower', 'ReactivePower']
PV_COLUMNS = ['Timestamp', 'Irradiance', 'Temperature']


def pv_power_kw(
    irradiance: np.ndarray,
    temperature: np.ndarray,
    efficiency: float = config.PV_EFFICIENCY,
    area_m2: float = config.PV_AREA_M2,
    temp_coeff: float = config.PV_TEMP_COEFF,
    rated_kw: float = config.PV_RATED_KW,
) -> np.ndarray:
    """
    Simplified PV output P = eta * A * G * [1 - beta * (T - 25)], clipped to the rating.
    Args:
        irradiance: Plane irradiance (W/m2).
        temperature: Ambient temperature (degC).
    Returns:
        np.ndarray: PV output in kW.
    """
    irradiance = np.asarray(irradiance, dtype=float)
    temperature = np.asarray(temperature, dtype=float)
    p_pv = efficiency * area_m2 * irradiance * (1 - temp_coeff * (temperature - config.PV_REFERENCE_TEMP_C)) / 1000
    return np.clip(p_pv, 0, rated_kw)


def _hours(num_points: int = config.MINUTES_PER_DAY) -> np.ndarray:
    return np.arange(num_points) / 60


def generate_synthetic_load(rng: np.random.Generator = None) -> pd.DataFrame:
    """
    Double-peak residential day at 1-minute resolution with random fluctuation.
    """
    if rng is None:
        rng = np.random.default_rng(config.RANDOM_SEED)
    t = _hours()

    p = config.SYNTHETIC_P_BASE_KW + (config.SYNTHETIC_P_PEAK_KW - config.SYNTHETIC_P_BASE_KW) * (
        0.3 * np.exp(-((t - 8) ** 2) / 4)      # Morning peak
        + 0.7 * np.exp(-((t - 19) ** 2) / 6)   # Evening peak
    )
    q = p * config.SYNTHETIC_Q_RATIO # pf ~0.9

    p = p * (1 + config.SYNTHETIC_P_NOISE * rng.standard_normal(t.size))
    q = q * (1 + config.SYNTHETIC_Q_NOISE * rng.standard_normal(t.size))

    return pd.DataFrame({
        'time': np.arange(t.size),
        'p_kw': p,
        'q_kvar': q,
    })


def generate_synthetic_pv() -> pd.DataFrame:
    """
    Clear-sky Gaussian irradiance with a short cloud transient around 14:10.
    """
    t = _hours()

    irradiance = config.SYNTHETIC_PEAK_IRRADIANCE * np.exp(-((t - 13) ** 2) / 20)
    irradiance[(t < 6) | (t > 20)] = 0

    cloud_start, cloud_end = config.CLOUD_WINDOW_H
    cloud_effect = np.ones_like(t)
    cloud_effect[(t > cloud_start) & (t < cloud_end)] = config.CLOUD_FACTOR
    irradiance = irradiance * cloud_effect

    temperature = 15 + 10 * np.exp(-((t - 14) ** 2) / 25)

    return pd.DataFrame({
        'time': np.arange(t.size),
        'irradiance': irradiance,
        'temperature': temperature,
        'p_kw': pv_power_kw(irradiance, temperature),
    })


def _read_csv(path: Path, required: list) -> pd.DataFrame:
    try:
        data = pd.read_csv(path)
    except pd.errors.ParserError:
        logger.error(f'Could not parse REFIT file {path}')
        raise

    missing = [col for col in required if col not in data.columns]
    if missing:
        raise ValueError(f'{path} is missing columns: {missing}')
    return data


def _minutes_of_day(timestamps: pd.Series) -> np.ndarray:
    stamps = pd.to_datetime(timestamps)
    return (stamps.dt.hour * 60 + stamps.dt.minute).to_numpy()


def load_refit_data(
    date_str: str = config.REFIT_DATE,
    data_folder: str = config.REFIT_DATA_FOLDER,
    rng: np.random.Generator = None,
) -> Tuple[pd.DataFrame, pd.DataFrame]:
    """
    Loads 1-minute REFIT House 1 load and the matching solar record for one day.
    Falls back to synthetic profiles when files are missing.
    Args:
        date_str (str): Day as YYYY-MM-DD.
        data_folder (str): Folder holding the REFIT csv files.
    Returns:
        load_profiles [time, p_kw, q_kvar], pv_profiles [time, irradiance, temperature, p_kw]
    """
    data_folder = Path(data_folder)
    logger.info(f'Loading REFIT data: {date_str}...')

    load_file = data_folder / config.REFIT_LOAD_FILE.format(date=date_str)
    if not load_file.exists():
        logger.warning(f'REFIT data file {load_file} not found, generating simulated data')
        return generate_synthetic_load(rng), generate_synthetic_pv()

    data = _read_csv(load_file, LOAD_COLUMNS)
    load_profiles = pd.DataFrame({
        'time': _minutes_of_day(data.Timestamp),
        'p_kw': data.ActivePower.to_numpy() / 1000 * config.P_DIVERSITY_FACTOR, # W -> kW
        'q_kvar': data.ReactivePower.to_numpy() / 1000 * config.Q_DIVERSITY_FACTOR,
    })

    pv_file = data_folder / config.REFIT_PV_FILE.format(date=date_str)
    if pv_file.exists():
        solar = _read_csv(pv_file, PV_COLUMNS)
        irradiance = solar.Irradiance.to_numpy(dtype=float)
        temperature = solar.Temperature.to_numpy(dtype=float)
        pv_profiles = pd.DataFrame({
            'time': _minutes_of_day(solar.Timestamp),
            'irradiance': irradiance,
            'temperature': temperature,
            'p_kw': pv_power_kw(irradiance, temperature),
        })
    else:
        logger.warning(f'Solar file {pv_file} not found, using a clear-sky PV day')
        pv_profiles = generate_synthetic_pv()

    logger.info(f'Data loading complete: {len(load_profiles)} data points')
    return load_profiles, pv_profiles
