"""CLI entry point: ties together configuration, logging and the console."""

from __future__ import annotations

import argparse
import dataclasses
import logging
import logging.handlers
import pathlib
import sys

from simple_forum.settings import DEFAULT_CONFIG_PATH, ConfigError, LoggingSettings, Settings

LOG_FORMAT = "%(asctime)s %(name)s %(levelname)s %(message)s"
LOG_FILE_NAME = "logs.log"


def configure_logging(cfg: LoggingSettings, verbose: bool = False) -> None:
    """Configure the root logger; optionally add a log file rotated at midnight."""
    handlers: list[logging.Handler] = [logging.StreamHandler()]
    if cfg.file:
        log_dir = pathlib.Path(cfg.file)
        log_dir.mkdir(parents=True, exist_ok=True)
        file_handler = logging.handlers.TimedRotatingFileHandler(log_dir / LOG_FILE_NAME, when="midnight")
        file_handler.suffix = "%m_%d_%Y"
        handlers.append(file_handler)

    logging.basicConfig(
        level=logging.DEBUG if verbose else getattr(logging, cfg.level, logging.INFO),
        format=LOG_FORMAT,
        handlers=handlers,
    )


def main() -> None:
    parser = argparse.ArgumentParser(
        description="Simple Forum: forums, mail and accounts over a session registry",
    )
    parser.add_argument(
        "--config",
        default=str(DEFAULT_CONFIG_PATH),
        help="Path to settings.yaml",
    )
    parser.add_argument(
        "--policies",
        default=None,
        help="Path to access.yaml (default: policies/access.yaml)",
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable debug logging",
    )
    args = parser.parse_args()

    try:
        settings = Settings.load(args.config)
    except ConfigError as exc:
        print(f"Configuration error: {exc}", file=sys.stderr)
        sys.exit(2)
    if args.policies:
        settings = dataclasses.replace(settings, policy_path=pathlib.Path(args.policies))

    configure_logging(settings.logging, verbose=args.verbose)

    from simple_forum.prompt.cli import run_cli

    run_cli(settings)


if __name__ == "__main__":
    main()
