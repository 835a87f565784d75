import numpy as np
import pandas as pd

import utils.config as config


def base_values(v_base: float = config.V_BASE, s_base: float = config.S_BASE) -> dict:
    """
    Per-unit bases of a three-phase system.
    Args:
        v_base (float): Line voltage (V).
        s_base (float): Three-phase power (VA).
    Returns:
        dict: v_base, s_base, i_base (A), z_base (ohm).
    """
    if v_base <= 0 or s_base <= 0:
        raise ValueError(f'Base values must be positive, got Vbase={v_base}, Sbase={s_base}')

    return {
        'v_base': v_base,
        's_base': s_base,
        'i_base': s_base / (np.sqrt(3) * v_base),
        'z_base': v_base ** 2 / s_base,
    }


def lines_to_pu(line_data: pd.DataFrame, z_base: float) -> pd.DataFrame:
    """Total section impedance (per km x length) over Zbase, in r_pu/x_pu columns."""
    line_data_pu = line_data.copy()
    line_data_pu['r_pu'] = line_data.r_ohm_per_km * line_data.length_km / z_base
    line_data_pu['x_pu'] = line_data.x_ohm_per_km * line_data.length_km / z_base
    return line_data_pu


def loads_to_pu(load_data: pd.DataFrame, s_base: float) -> pd.DataFrame:
    load_data_pu = load_data.copy()
    load_data_pu['p_pu'] = load_data.p_kw * 1000 / s_base
    load_data_pu['q_pu'] = load_data.q_kvar * 1000 / s_base
    return load_data_pu


def pv_to_pu(pv_data: pd.DataFrame, s_base: float) -> pd.DataFrame:
    pv_data_pu = pv_data.copy()
    pv_data_pu['p_pu'] = pv_data.p_kw * 1000 / s_base
    return pv_data_pu


def mean_rx_ratio(line_data_pu: pd.DataFrame) -> float:
    return float(np.mean(line_data_pu.r_pu / line_data_pu.x_pu))
