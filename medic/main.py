"""Composition root for the Medic diagnosis system.

This module is the ONLY location that imports both core domain logic
and concrete adapter implementations for the command line. All wiring of
dependencies happens here.

Module Structure:
- Argument parsing
- Configuration loading via config module
- Logging setup
- Plugin and runner construction
- Subcommand dispatch (run, diagnose)
"""

import argparse
import asyncio
import logging
import sys
from pathlib import Path

from pydantic import ValidationError

from medic.adapters.cli.runner import BuildCommandRunner
from medic.adapters.host.plugin import DiagnosisPlugin
from medic.adapters.output.styles import Palette
from medic.config import load_settings
from medic.core.errors import ConfigurationError

EXIT_CONFIG_ERROR = 2
EXIT_INTERRUPTED = 130


def build_parser() -> argparse.ArgumentParser:
    """Build the command-line parser."""
    parser = argparse.ArgumentParser(
        prog="medic",
        description="Diagnose failed builds with a language model.",
    )
    parser.add_argument(
        "--env-file",
        default=None,
        help="Path to a .env file with MEDIC_* settings",
    )
    parser.add_argument(
        "--no-color",
        action="store_true",
        help="Disable ANSI colors",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    run = subparsers.add_parser("run", help="Run a build command and diagnose failures")
    run.add_argument("build_command", nargs=argparse.REMAINDER, help="Command to run (after --)")

    diagnose = subparsers.add_parser("diagnose", help="Diagnose a saved build log")
    diagnose.add_argument("log_file", type=Path, help="Build log to diagnose")
    diagnose.add_argument("--message", default=None, help="Error message (default: last log line)")

    return parser


def configure_logging(log_level: str, log_format: str) -> None:
    """Configure application logging.

    Logs go to stderr so they never interleave with diagnosis output
    on stdout.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        log_format: Log format (json, text).
    """
    level = getattr(logging, log_level, logging.WARNING)

    if log_format == "json":
        format_str = '{"time": "%(asctime)s", "level": "%(levelname)s", "message": "%(message)s"}'
    else:
        format_str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

    logging.basicConfig(
        level=level,
        format=format_str,
        handlers=[
            logging.StreamHandler(sys.stderr),
        ],
    )


async def bootstrap(args: argparse.Namespace) -> int:
    """Load configuration, wire the plugin, and run the selected command.

    Returns:
        Process exit status.

    Raises:
        ConfigurationError: If settings do not describe a usable model.
    """
    try:
        settings = load_settings(args.env_file)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid MEDIC_* settings: {e}") from e

    configure_logging(settings.log_level, settings.log_format)
    logger = logging.getLogger(__name__)

    palette = Palette(force_color=False) if (args.no_color or settings.no_color) else Palette()
    plugin = DiagnosisPlugin(settings.to_options(), palette=palette)
    logger.info(f"Diagnosis plugin ready: provider={settings.provider}")

    runner = BuildCommandRunner(plugin)
    try:
        if args.command == "run":
            command = list(args.build_command)
            if command and command[0] == "--":
                command = command[1:]
            if not command:
                raise ConfigurationError("medic run: no build command given")
            return await runner.run(command)

        await runner.diagnose_log(args.log_file, message=args.message)
        return 0
    finally:
        await plugin.close()


def main(argv: list[str] | None = None) -> None:
    """Application entry point.

    Exit codes:
        N: The build command's own exit status (run)
        0: Log diagnosed (diagnose)
        1: Unexpected error
        2: Configuration error
        130: Interrupted by user (SIGINT/KeyboardInterrupt)
    """
    args = build_parser().parse_args(argv)
    logger = logging.getLogger(__name__)
    try:
        code = asyncio.run(bootstrap(args))
    except ConfigurationError as e:
        print(f"medic: {e}", file=sys.stderr)
        sys.exit(EXIT_CONFIG_ERROR)
    except KeyboardInterrupt:
        logger.warning("Shutdown requested by user (SIGINT)")
        sys.exit(EXIT_INTERRUPTED)
    except OSError as e:
        print(f"medic: {e}", file=sys.stderr)
        sys.exit(1)
    sys.exit(code)


if __name__ == "__main__":
    main()
