import logging
from datetime import datetime
from pathlib import Path

import numpy as np
import pandas as pd

import utils.config as config

logger = logging.getLogger(__name__)


def save_results(results: dict, results_dir: str = config.RESULTS_DIR, timestamp: datetime = None) -> Path:
    """Saves one simulation record as results/simulation_results_<case>_<timestamp>.npz"""
    results_dir = Path(results_dir)
    results_dir.mkdir(parents=True, exist_ok=True)
    timestamp = datetime.now() if timestamp is None else timestamp

    path = results_dir / f'simulation_results_{results["case"]}_{timestamp:%Y%m%d_%H%M%S_%f}.npz'
    arrays = {key: np.asarray(value) for key, value in results.items()}
    np.savez(path, **arrays)
    logger.info(f'Results saved to {path}')
    return path


def load_results(path) -> dict:
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f'Result file {path} not found')
    with np.load(path, allow_pickle=False) as archive:
        results = {key: archive[key] for key in archive.files}
    if 'case' in results:
        results['case'] = str(results['case'])
    return results


def find_latest_results(results_dir: str = config.RESULTS_DIR) -> Path:
    files = list(Path(results_dir).glob(config.RESULTS_PATTERN))
    if not files:
        raise FileNotFoundError('Result file not found, please run the simulation first')
    return max(files, key=lambda f: f.stat().st_mtime)


def save_summary(summary: dict, filename) -> Path:
    """Saves the analysis summary to an Excel workbook, one sheet per section."""
    filename = Path(filename)
    filename.parent.mkdir(parents=True, exist_ok=True)
    with pd.ExcelWriter(filename) as writer:
        if 'voltage' in summary:
            voltage = summary['voltage']
            pd.DataFrame({
                'node': np.arange(1, len(voltage['v_steady']) + 1),
                'v_steady_pu': voltage['v_steady'],
                'deviation_pct': np.abs(voltage['v_steady'] - 1.0) * 100,
            }).to_excel(writer, sheet_name='Voltage', index=False)
        if 'losses' in summary:
            summary['losses']['line_table'].to_excel(writer, sheet_name='Line_Losses', index=False)
        if 'branch_flow' in summary:
            summary['branch_flow']['line_table'].to_excel(writer, sheet_name='Branch_Flow', index=False)

    logger.info(f'Summary saved to {filename}')
    return filename
