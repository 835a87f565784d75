import sys
import logging
import argparse

import utils.config as config

logger = logging.getLogger(__name__)


def parse_args(argv: list = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description='Voltage control on the IEEE 33-bus UK 11kV feeder with rooftop PV and an OLTC',
    )
    parser.add_argument(
        '--parameter-file', default=config.PARAMETER_FILE,
        help='Parameter file written by init and read by simulate/analyze'
    )
    parser.add_argument(
        '--results-dir', default=config.RESULTS_DIR,
        help='Folder for simulation_results_*.npz files'
    )
    parser.add_argument(
        '--log-file', default=config.LOG_FILE,
    )
    parser.add_argument(
        '-v', '--verbose', action='store_true', help='Debug logging'
    )
    subparsers = parser.add_subparsers(dest='command', required=True)

    init = subparsers.add_parser('init', help='Initialise system parameters and load REFIT data')
    simulate = subparsers.add_parser('simulate', help='Run the quasi-static daily scenarios')
    analyze = subparsers.add_parser('analyze', help='Analyse a results file')
    run_all = subparsers.add_parser('run-all', help='init, simulate every case and analyse each of them')

    for sub in (init, run_all):
        sub.add_argument(
            '--date', default=config.REFIT_DATE, help='REFIT day, i.e.: --date 2014-07-24'
        )
        sub.add_argument(
            '--data-folder', default=config.REFIT_DATA_FOLDER,
        )
        sub.add_argument(
            '--pv-bus', nargs='+', type=int, default=config.PV_BUSES,
            help='Provide a list of PV buses (1-based) i.e.: --pv-bus 6 18 33'
        )

    for sub in (simulate, run_all):
        sub.add_argument(
            '--case', choices=list(config.CASES) + ['all'], default='all',
        )
        sub.add_argument(
            '--step', type=float, default=None, help='Quasi-static time step (s)'
        )
        sub.add_argument(
            '--stop-time', type=float, default=None, help='End of the run (s)'
        )

    for sub in (analyze, run_all):
        sub.add_argument(
            '--show', action='store_true', help='Open the figures'
        )
        sub.add_argument(
            '--export', action='store_true', help='Write PNG/PDF/Excel report next to the results'
        )
    analyze.add_argument(
        '--results-file', default=None,
        help='Results file to analyse, the latest one when omitted'
    )
    return parser.parse_args(argv)


def setup_logging(log_file: str, verbose: bool = False) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        handlers=[
            logging.StreamHandler(),
            logging.FileHandler(log_file),
        ],
        format='%(asctime)s [%(levelname)s] %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S',
    )


def _selected_cases(case: str) -> list:
    return list(config.CASES) if case == 'all' else [case]


def main(argv: list = None) -> None:
    args = parse_args(argv)
    setup_logging(args.log_file, args.verbose)

    # heavy imports after logging is configured
    from src.initialise import init_voltage_control, load_parameters
    from src.simulation import run_case
    from src.analysis import analyze_results
    from utils.results import save_results

    if args.command == 'init':
        init_voltage_control(args.date, args.parameter_file, args.data_folder, args.pv_bus)

    elif args.command == 'simulate':
        params = load_parameters(args.parameter_file)
        for case in _selected_cases(args.case):
            save_results(run_case(case, params, args.step, args.stop_time), args.results_dir)

    elif args.command == 'analyze':
        analyze_results(
            args.results_file, args.results_dir, args.parameter_file,
            show=args.show, export=args.export,
        )

    elif args.command == 'run-all':
        params = init_voltage_control(args.date, args.parameter_file, args.data_folder, args.pv_bus)
        for case in _selected_cases(args.case):
            path = save_results(run_case(case, params, args.step, args.stop_time), args.results_dir)
            analyze_results(path, args.results_dir, args.parameter_file, show=args.show, export=args.export)


def run(argv: list = None) -> None:
    """Console entry point: failures are logged and end with exit status 1."""
    try:
        main(argv)
    except Exception as e:
        logger.exception(f'Error while running voltage control study: \n{e}')
        sys.exit(1)


if __name__ == '__main__':
    run()
