"""
Central CLI entrypoint for the multiverse analysis engine.

This module parses command-line arguments to build a Blueprint from a YAML
description over a CSV dataset and then inspect or run its multiverse.

Usage:
    python main.py <command> --data DATA_CSV --blueprint BLUEPRINT_YAML [options]

Supported commands:
    count           Print the number of pipelines and filter factors
    filters         Print rows removed by each filter alternative
    show-code       Print the resolved code of one stage of one pipeline
    run             Run every pipeline and write the parameter table

Examples:
    python main.py count --data data.csv --blueprint configs/example_blueprint.yaml
    python main.py filters --data data.csv --blueprint configs/example_blueprint.yaml
    python main.py show-code --data data.csv --blueprint configs/example_blueprint.yaml --decision-id 3 --stage model
    python main.py run --data data.csv --blueprint configs/example_blueprint.yaml \\
        --config configs/multiverse.yaml --output results/parameters.csv
"""

import argparse
import os

import pandas as pd

from multiverse.blueprint.loader import load_blueprint
from multiverse.expansion.expander import (
    expand,
    filter_exclusion_summary,
    filter_factor_count,
    total_count,
)
from multiverse.execution.runner import run_multiverse
from multiverse.results.unpack import failure_summary, reveal
from multiverse.utils.config_loader import load_typed_config
from multiverse.utils.logger import configure_logging, get_logger

logger = get_logger(__name__)


def validate_config_path(config_path: str) -> None:
    """
    Validates whether the given path exists and is a file.

    Args:
        config_path (str): Path to the config, blueprint or data file.

    Raises:
        FileNotFoundError: If the file does not exist.
    """
    if not config_path or not os.path.isfile(config_path):
        logger.error(f"Config file not found: {config_path}")
        raise FileNotFoundError(f"Config file not found: {config_path}")


def build_blueprint(data_path: str, blueprint_path: str):
    """Read the CSV dataset and apply the YAML blueprint to it."""
    validate_config_path(data_path)
    validate_config_path(blueprint_path)
    dataset = pd.read_csv(data_path)
    logger.info(f"Loaded dataset {data_path} with shape {dataset.shape}")
    return load_blueprint(blueprint_path, dataset)


def run_command(args: argparse.Namespace) -> None:
    """Run the multiverse described by ``args`` and write the parameter table."""
    config = load_typed_config(args.config) if args.config else load_typed_config()
    configure_logging(config.logging.level, config.logging.file)

    bp = build_blueprint(args.data, args.blueprint)
    grid = expand(bp)
    results = run_multiverse(
        grid,
        config=config.execution,
        n_workers=args.workers,
        error_log=config.logging.error_log,
    )

    table = reveal(results)
    if args.output:
        out_dir = os.path.dirname(args.output)
        if out_dir:
            os.makedirs(out_dir, exist_ok=True)
        table.to_csv(args.output, index=False)
        logger.info(f"Wrote {len(table)} rows to {args.output}")
    else:
        print(table.to_string(index=False))
    print(failure_summary(results).to_string(index=False))


def main():
    """
    Parse CLI arguments and dispatch commands.
    """
    parser = argparse.ArgumentParser(description="Multiverse Analysis CLI")
    subparsers = parser.add_subparsers(dest="command", required=True)

    def _add_inputs(sub):
        sub.add_argument("--data", "-d", required=True, help="Path to the dataset CSV")
        sub.add_argument("--blueprint", "-b", required=True, help="Path to the blueprint YAML")

    # --- Count ---
    count_parser = subparsers.add_parser("count", help="Count pipelines in the multiverse")
    _add_inputs(count_parser)

    # --- Filters ---
    filters_parser = subparsers.add_parser("filters", help="Summarise rows removed per filter")
    _add_inputs(filters_parser)

    # --- Show code ---
    code_parser = subparsers.add_parser("show-code", help="Show resolved code for one pipeline")
    _add_inputs(code_parser)
    code_parser.add_argument("--decision-id", type=int, required=True, help="Pipeline id (1-based)")
    code_parser.add_argument(
        "--stage", choices=["filter", "preprocess", "model", "postprocess"], default="model",
        help="Stage whose code to print"
    )

    # --- Run ---
    run_parser = subparsers.add_parser("run", help="Run every pipeline")
    _add_inputs(run_parser)
    run_parser.add_argument("--config", "-c", default=None, help="Path to run config YAML")
    run_parser.add_argument("--output", "-o", default=None, help="CSV path for the parameter table")
    run_parser.add_argument("--workers", type=int, default=None, help="Override the number of workers")

    args = parser.parse_args()

    try:
        if args.command == "run":
            if args.config:
                validate_config_path(args.config)
            logger.info(f"Running multiverse from blueprint: {args.blueprint}")
            run_command(args)
            return

        bp = build_blueprint(args.data, args.blueprint)

        if args.command == "count":
            print(f"pipelines: {total_count(bp)}")
            print(f"filter factors: {filter_factor_count(bp)}")

        elif args.command == "filters":
            print(filter_exclusion_summary(bp).to_string(index=False))

        elif args.command == "show-code":
            grid = expand(bp)
            print(grid.show_code(args.stage, args.decision_id))

    except Exception as e:
        logger.exception(f"Fatal error during execution: {e}")
        raise


if __name__ == "__main__":
    main()
