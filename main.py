import os
import time
import logging
import argparse

from benders import BendersEngine
from config import load_config
from fetch_data import fetch_contingency_pattern, fetch_index_registry, fetch_investment_floor


def get_args(argv=None):
    parser = argparse.ArgumentParser(description='Evaluate one investment candidate with Benders decomposition.')
    parser.add_argument('config', help='path to the engine TOML configuration')
    parser.add_argument('--floor', default=None, help='CSV with the minimum investment vector')
    parser.add_argument('--events', default=None, help='CSV with the contingency pattern vector')
    parser.add_argument('--debug', action='store_true', help='log at DEBUG level')
    return parser.parse_args(argv)


def setup_logger(debug, results_directory=None):
    kwargs = {}
    if results_directory:
        os.makedirs(results_directory, exist_ok=True)
        kwargs = {'filename': os.path.join(results_directory, 'run.log'), 'encoding': 'utf-8', 'filemode': 'w'}
    logging.basicConfig(
        format='%(asctime)s | %(name)s | %(levelname)s :: %(message)s',
        datefmt='%d-%b-%y %H:%M:%S',
        level=logging.DEBUG if debug else logging.INFO,
        **kwargs,
    )
    logging.getLogger('matplotlib').setLevel(logging.WARNING)


def main(argv=None):
    execution_start_time = time.time()
    args = get_args(argv)

    config = load_config(args.config)
    setup_logger(args.debug, config.results_directory)
    logger = logging.getLogger(__name__)
    logger.info(f"Years: {config.n_years}, Benders: {config.use_benders}, Events: {config.n_events}")

    registry = fetch_index_registry(config.prepdata_directory)
    pattern = fetch_contingency_pattern(args.events, registry, config.n_years, config.n_events)
    investment_floor = fetch_investment_floor(args.floor, registry)

    engine = BendersEngine.from_prepdata(config, registry)
    try:
        result = engine.solve_candidate(investment_floor, pattern, report=True)
    finally:
        engine.close()

    print('Objectives: ' + ', '.join(f'{value:g}' for value in result.objectives))
    if result.metrics_string is not None:
        print('Metrics: ' + result.metrics_string)
    print(f"Total Time: {time.time() - execution_start_time:.2f} seconds")
    return result


if __name__ == '__main__':
    main()
