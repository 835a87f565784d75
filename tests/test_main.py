import logging

import pytest

import main


def test_parse_args_defaults():
    args = main.parse_args(['simulate'])
    assert args.command == 'simulate'
    assert args.case == 'all'
    assert args.step is None


def test_parse_args_requires_command():
    with pytest.raises(SystemExit):
        main.parse_args([])


def test_parse_args_rejects_unknown_case():
    with pytest.raises(SystemExit):
        main.parse_args(['simulate', '--case', 'droop_only'])


def test_init_simulate_analyze(tmp_path):
    parameter_file = tmp_path / 'params.npz'
    results_dir = tmp_path / 'results'
    common = [
        '--parameter-file', str(parameter_file),
        '--results-dir', str(results_dir),
        '--log-file', str(tmp_path / 'run.log'),
    ]

    main.main(common + ['init', '--data-folder', str(tmp_path / 'refit')])
    assert parameter_file.exists()

    main.main(common + ['simulate', '--case', 'oltc_only', '--step', '900', '--stop-time', '3600'])
    assert len(list(results_dir.glob('simulation_results_oltc_only_*.npz'))) == 1

    main.main(common + ['analyze', '--export'])
    assert list(results_dir.glob('analysis_oltc_only_*_report.pdf'))


def test_run_logs_failure_and_exits_with_status_1(tmp_path, caplog):
    argv = [
        '--results-dir', str(tmp_path / 'empty'),
        '--log-file', str(tmp_path / 'run.log'),
        'analyze',
    ]

    with caplog.at_level(logging.ERROR), pytest.raises(SystemExit) as excinfo:
        main.run(argv)

    assert excinfo.value.code == 1
    assert 'run the simulation first' in caplog.text
