from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Iterable

import yaml

from minio_statemap import __version__
from minio_statemap.config import Config, load_config
from minio_statemap.convert import run
from minio_statemap.errors import ErrorCode, StatemapError, handle_exception, set_verbose
from minio_statemap.logging_config import setup_logging
from minio_statemap.output.statemap import write_intervals_jsonl, write_statemap
from minio_statemap.state.timeline import OrphanPolicy
from minio_statemap.trace.event_model import TraceEvent
from minio_statemap.trace.event_reader import read_event_stream
from minio_statemap.trace.minio_reader import read_minio_trace

logger = logging.getLogger(__name__)

INPUT_FORMATS = ["minio", "events"]
OUTPUT_FORMATS = ["statemap", "intervals"]

EXAMPLE_USAGE = """\
Example usage:
  minio-statemap -i ./my_minio_trace.out > minio_states
  minio-statemap -i ./events.jsonl --input-format events --format intervals
"""


def _check_startup() -> None:
    """Refuse to run on an unsupported Python."""
    major, minor = sys.version_info[:2]
    if major < 3 or (major == 3 and minor < 10):
        print("ERROR: minio-statemap requires Python 3.10 or later.", file=sys.stderr)
        print(f"       You are running Python {major}.{minor}.", file=sys.stderr)
        sys.exit(1)


def _read_events(path: Path, input_format: str) -> Iterable[TraceEvent]:
    if input_format == "events":
        return read_event_stream(path)
    return read_minio_trace(path)


def _cli_overrides(args: argparse.Namespace) -> dict[str, object]:
    overrides: dict[str, object] = {
        "title": args.title,
        "cluster_name": args.cluster_name,
    }
    if args.lenient_orphans:
        overrides["orphan_policy"] = OrphanPolicy.LENIENT.value
    if args.keep_zero_length:
        overrides["coalesce_zero_length"] = False
    return overrides


def _cmd_show_config(config: Config) -> int:
    """Print the effective configuration as YAML."""
    if config.config_file_path:
        print(f"# Config file: {config.config_file_path}")
    else:
        print("# Config file: none loaded")
    print(yaml.safe_dump(config.to_dict(), default_flow_style=False, sort_keys=False), end="")
    return 0


def _cmd_convert(args: argparse.Namespace, config: Config) -> int:
    input_path = Path(args.input_file)
    if not input_path.exists():
        raise StatemapError(str(input_path), ErrorCode.E200)

    events = _read_events(input_path, args.input_format)
    result = run(events, config)
    if result.is_empty():
        logger.warning("No events found in %s", input_path)

    if args.format == "intervals":
        write_intervals_jsonl(result, sys.stdout)
    else:
        write_statemap(result, sys.stdout, config.title, config.cluster_name)
    return 0


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="minio-statemap",
        description="Convert MinIO JSON trace output to statemap input",
        epilog=EXAMPLE_USAGE,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    p.add_argument(
        "-i", "--input-file",
        dest="input_file",
        metavar="FILE",
        help="path to minio trace file to be parsed",
    )
    p.add_argument(
        "-c", "--cluster-name",
        dest="cluster_name",
        metavar="NAME",
        help="name of the cluster for display in the rendered statemap (default: minio cluster)",
    )
    p.add_argument(
        "-t", "--title",
        metavar="TITLE",
        help="statemap title (default: MinIO)",
    )
    p.add_argument(
        "--input-format",
        choices=INPUT_FORMATS,
        default="minio",
        help="minio: 'mc admin trace --json' output (default); events: JSONL begin/end events",
    )
    p.add_argument(
        "--format",
        choices=OUTPUT_FORMATS,
        default="statemap",
        help="Output format: statemap (default) or intervals (JSONL)",
    )
    p.add_argument(
        "--config",
        metavar="FILE",
        help="YAML config file (default: $MINIO_STATEMAP_CONFIG)",
    )
    p.add_argument(
        "--lenient-orphans",
        action="store_true",
        help="Drop END events without a matching BEGIN instead of failing",
    )
    p.add_argument(
        "--keep-zero-length",
        action="store_true",
        help="Emit zero-length intervals instead of coalescing them",
    )
    p.add_argument(
        "--show-config",
        action="store_true",
        help="Print the effective configuration and exit",
    )
    p.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Debug logging and full tracebacks on errors",
    )
    p.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )
    return p


def main(argv: list[str] | None = None) -> None:
    _check_startup()

    p = build_parser()
    args = p.parse_args(argv)

    set_verbose(args.verbose)
    setup_logging("DEBUG" if args.verbose else None)

    try:
        config = load_config(config_file=args.config, cli_overrides=_cli_overrides(args))
        if args.show_config:
            sys.exit(_cmd_show_config(config))
        if not args.input_file:
            p.error("the following arguments are required: -i/--input-file")
        exit_code = _cmd_convert(args, config)
    except StatemapError as e:
        handle_exception(e)
        sys.exit(1)

    sys.exit(exit_code)
