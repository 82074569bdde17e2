"""
Command-line interface for rair.

Parses arguments, configures logging, assembles the session's
EffectiveConfig from the configuration file and flags, and runs a watch
session until interrupted.

Usage:
    rair [FILES...] [--config PATH] [--watch PATH]... [--build ARGV...] [--run ARGV...]

Example:
    rair --release --bin server
    rair src/main.rs
    rair --build make --release --run ./out/app --port 8080 -- -v
"""

import argparse
import logging
import os
import sys
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Tuple

from .. import __version__
from ..config import effective_config, files_mode_config, load_session_config_file, validate_cli_config
from ..models.config import EffectiveConfig, PartialConfig
from ..orchestration import ACTIVE_ENV_VAR, WatchSession
from ..validation import ConfigurationError, ValidationError, WatchSourceFailure, handle_cli_error

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s [%(levelname)-5.5s] %(message)s"
LOG_DATEFMT = "%Y-%m-%d %H:%M:%S"

# Options whose values are a whole command line.
COMMAND_OPTIONS = ("--build", "--run")


def configure_logging(verbose: bool = False, quiet: bool = False) -> None:
    if verbose:
        level = logging.DEBUG
    elif quiet:
        level = logging.WARNING
    else:
        level = logging.INFO
    logging.basicConfig(
        level=level,
        format=LOG_FORMAT,
        datefmt=LOG_DATEFMT,
        stream=sys.stderr,
        force=True,
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="rair",
        description="Rebuild and restart a program whenever its sources change.",
    )
    parser.add_argument(
        "files",
        nargs="*",
        type=Path,
        metavar="FILES",
        help="Source files to compile and run directly instead of building a package.",
    )
    parser.add_argument("--config", type=Path, help="Configuration file (default: ./.rair.toml if present).")

    watching = parser.add_argument_group("watching")
    watching.add_argument("--watch", action="append", metavar="PATH", help="Path to watch (repeatable).")
    watching.add_argument("--ignore", action="append", metavar="GLOB", help="Glob of paths to ignore (repeatable).")
    watching.add_argument("--include-ext", action="append", metavar="EXT",
                          help="Extension that triggers a rebuild (repeatable).")
    watching.add_argument("--exclude-ext", action="append", metavar="EXT",
                          help="Extension that never triggers a rebuild (repeatable).")
    watching.add_argument("--debounce-ms", type=int, metavar="N", help="Quiet period before rebuilding (default: 250).")
    watching.add_argument("--clear", choices=["true", "false"], help="Clear the terminal before each restart.")
    watching.add_argument("--grace-seconds", type=float, metavar="S",
                          help="Time the old process gets to exit before it is killed (default: 5).")

    commands = parser.add_argument_group("commands")
    commands.add_argument("--build", nargs="+", metavar="ARGV",
                          help="Build command line, replacing the default cargo build.")
    commands.add_argument("--run", nargs="+", metavar="ARGV",
                          help="Run command line, replacing the built binary. Ends at -- or --build.")

    package = parser.add_argument_group("package build")
    package.add_argument("--manifest-path", metavar="PATH")
    package.add_argument("-p", "--package", metavar="PKG")
    package.add_argument("--bin", metavar="BIN")
    package.add_argument("--features", action="append", metavar="F",
                         help="Feature list, comma separated (repeatable).")
    package.add_argument("--all-features", action="store_true", default=None)
    package.add_argument("--no-default-features", action="store_true", default=None)
    package.add_argument("--workspace", action="store_true", default=None)
    package.add_argument("--release", action="store_true", default=None)

    output = parser.add_mutually_exclusive_group()
    output.add_argument("-v", "--verbose", action="store_true", help="Debug logging.")
    output.add_argument("-q", "--quiet", action="store_true", help="Only log warnings and errors.")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser


def extract_commands(argv: Sequence[str]) -> Tuple[List[str], Dict[str, List[str]]]:
    """
    Pull `--build`/`--run` command lines out of `argv`.

    A command line extends up to the other command option or a `--`
    separator, so it may contain its own dash-prefixed arguments. Other rair
    options go before it or after the separator.

    Returns:
        The remaining arguments and the extracted command lines by option.
    """
    rest: List[str] = []
    commands: Dict[str, List[str]] = {}
    i = 0
    while i < len(argv):
        arg = argv[i]
        if arg not in COMMAND_OPTIONS:
            rest.append(arg)
            i += 1
            continue
        i += 1
        command: List[str] = []
        while i < len(argv) and argv[i] not in COMMAND_OPTIONS:
            if argv[i] == "--":
                i += 1
                break
            command.append(argv[i])
            i += 1
        commands[arg] = command
    return rest, commands


def _split_features(values: Optional[List[str]]) -> Optional[List[str]]:
    if values is None:
        return None
    return [f.strip() for v in values for f in v.split(",") if f.strip()]


def cli_config(args: argparse.Namespace) -> PartialConfig:
    return PartialConfig(
        watch=args.watch,
        ignore=args.ignore,
        include_ext=args.include_ext,
        exclude_ext=args.exclude_ext,
        debounce_ms=args.debounce_ms,
        clear=args.clear,
        grace_seconds=args.grace_seconds,
        build=args.build,
        run=args.run,
        manifest_path=args.manifest_path,
        package=args.package,
        bin=args.bin,
        features=_split_features(args.features),
        all_features=args.all_features,
        no_default_features=args.no_default_features,
        workspace=args.workspace,
        release=args.release,
    )


def resolve_config(args: argparse.Namespace, working_dir: Path) -> EffectiveConfig:
    """
    Assemble the session configuration.

    Precedence, highest first: flags, then either files mode or the
    configuration file. Files mode ignores the configuration file.

    Raises:
        ConfigurationError: If any source is invalid
    """
    try:
        cli = validate_cli_config(cli_config(args))
    except ValidationError as e:
        raise ConfigurationError(str(e)) from e

    if args.files:
        if args.config is not None:
            logger.warning(f"Ignoring configuration file {args.config} in files mode")
        base = files_mode_config(args.files)
    else:
        base = load_session_config_file(args.config, working_dir) or PartialConfig()
    return effective_config(cli, base, working_dir)


def main_cli(argv: Optional[Sequence[str]] = None) -> None:
    """
    Main command-line entry point.

    Raises:
        SystemExit: On configuration errors, a nested invocation or a fatal
            watcher failure.
    """
    parser = build_parser()
    raw = list(sys.argv[1:] if argv is None else argv)
    rest, commands = extract_commands(raw)
    args = parser.parse_args(rest)
    for option, command in commands.items():
        if not command:
            parser.error(f"argument {option}: expected a command")
        setattr(args, option.lstrip("-"), command)

    configure_logging(verbose=args.verbose, quiet=args.quiet)

    if os.environ.get(ACTIVE_ENV_VAR):
        logger.error(f"rair is already running in this process tree ({ACTIVE_ENV_VAR} is set); refusing to nest")
        sys.exit(1)

    try:
        config = resolve_config(args, Path.cwd())
    except ConfigurationError as e:
        handle_cli_error(error=e, context="configuration", exit_code=1, logger=logger)

    try:
        WatchSession(config).run()
    except (ConfigurationError, WatchSourceFailure) as e:
        handle_cli_error(error=e, context="watch session", exit_code=1, logger=logger)
    except Exception as e:
        handle_cli_error(error=e, context="watch session", exit_code=1, include_traceback=True, logger=logger)
