"""request-log-analyzer: correlate request log lines and report frequencies."""

import logging
import sys
from argparse import ArgumentParser

from request_log_analyzer.config import load_config, load_yaml_config
from request_log_analyzer.controller import Controller
from request_log_analyzer.correlator import RequestCorrelator
from request_log_analyzer.export import export_file
from request_log_analyzer.output import get_renderer
from request_log_analyzer.parser import LineParser
from request_log_analyzer.reader import expand_paths, read_multiple
from request_log_analyzer.registry import TrackerRegistry
from request_log_analyzer.tracker import ConfigurationError

logger = logging.getLogger(__name__)


def build_parser() -> ArgumentParser:
    """Build the CLI argument parser."""
    parser = ArgumentParser(
        prog="request-log-analyzer",
        description="Group log lines into requests and report request frequencies.",
    )
    parser.add_argument(
        "files",
        nargs="+",
        help="Log file path(s) or glob pattern(s); '-' reads stdin",
    )
    parser.add_argument(
        "--config",
        required=True,
        help="YAML file with correlation, line and tracker definitions",
    )
    parser.add_argument(
        "--output",
        choices=["text", "json"],
        help="Report format (default: text)",
    )
    parser.add_argument(
        "--amount",
        help="Maximum rows per report table, or 'all'",
    )
    parser.add_argument(
        "--export",
        help="Write tracker data to this YAML (or .json) file",
    )
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Diagnostic log level (default: INFO)",
    )
    return parser


def run(args) -> int:
    config = load_config(load_yaml_config(args.config), args)
    logging.getLogger().setLevel(config.log_level)
    logger.info(
        "Config: %d line definition(s), %d tracker(s), key_field=%s, terminal=%s",
        len(config.line_definitions), len(config.tracker_specs),
        config.correlation.key_field, config.correlation.terminal_line_type,
    )

    paths = expand_paths(args.files)
    controller = Controller(
        LineParser(config.line_definitions),
        RequestCorrelator(config.correlation),
        TrackerRegistry.from_config(config.tracker_specs),
    )
    controller.run(read_multiple(paths))

    output = get_renderer(
        config.output_format,
        sys.stdout,
        amount=config.report_amount,
        **({"width": config.report_width} if config.output_format == "text" else {}),
    )
    controller.report(output)
    if config.output_format == "json":
        output.dump()

    if args.export:
        export_file(controller.registry.export(), args.export)
    return 0


def main(argv=None):
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [ANALYZER] %(levelname)s %(message)s",
        stream=sys.stderr,
    )
    parser = build_parser()
    args = parser.parse_args(argv)
    try:
        sys.exit(run(args))
    except (ConfigurationError, FileNotFoundError) as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)
    except (KeyboardInterrupt, BrokenPipeError):
        sys.exit(0)


if __name__ == "__main__":
    main()
