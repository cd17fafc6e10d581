"""CLI entrypoint for Orbital."""

from __future__ import annotations

import argparse
from collections.abc import Sequence
from importlib import metadata
import logging
from pathlib import Path

from .bootstrap import BootstrapSequencer
from .config import ensure_config_dir, load_config
from .context import build_context
from .exceptions import FatalError, PersistenceError
from .logging_utils import configure_logging
from .modules import default_modules
from .persistence import PersistentStore
from .report import render_report

LOGGER = logging.getLogger("orbital.cli")


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="orbital",
        description="Orbital - bootstrap the coordination core and its modules",
    )
    parser.add_argument(
        "--config",
        metavar="PATH",
        help="Read configuration from PATH instead of the user config file",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable diagnostic tracing of publish, set and record",
    )
    parser.add_argument(
        "--inspect",
        action="store_true",
        help="Print state and telemetry tables after bootstrap",
    )
    parser.add_argument(
        "--version",
        action="store_true",
        help="Print version and exit",
    )
    return parser


def _build_persistence(persistence_config: dict) -> PersistentStore | None:
    if not persistence_config.get("enabled", True):
        return None
    try:
        return PersistentStore(
            persistence_config["path"], prefix=persistence_config["prefix"]
        )
    except PersistenceError as exc:
        LOGGER.warning("Persistence unavailable: %s", exc)
        return None


def main(argv: Sequence[str] | None = None) -> None:
    """Load configuration, run the bootstrap pass, and shut down."""

    parser = _build_parser()
    args = parser.parse_args(list(argv) if argv is not None else None)

    if args.version:
        try:
            version = metadata.version("orbital")
        except metadata.PackageNotFoundError:
            version = "0.0.0"
        print(f"orbital {version}")
        return

    ensure_config_dir()
    config = load_config(Path(args.config).expanduser() if args.config else None)
    if args.debug:
        config["core"]["debug"] = True
    configure_logging(config["logging"])

    context = build_context(
        config, persistence=_build_persistence(config["persistence"])
    )
    sequencer = BootstrapSequencer(context)
    sequencer.extend(default_modules())

    try:
        # Stands in for the host "environment ready" signal.
        sequencer.fire()
        if args.inspect:
            render_report(context)
    except FatalError as exc:
        LOGGER.critical("Startup aborted: %s", exc)
        raise SystemExit(1) from exc
    finally:
        sequencer.shutdown()


if __name__ == "__main__":
    main()
