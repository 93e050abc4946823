"""
Command-line entry point for the structure relay server.
"""

import argparse
import logging
import socket
import sys
from collections.abc import Callable

import uvicorn
from fastapi import FastAPI

from structure_relay.core.app.application_factory import build_app
from structure_relay.core.common.logging_utils import (
    configure_logging,
    install_api_key_redaction_filter,
    mask_secret,
)
from structure_relay.core.common.structlog_config import configure_structlog
from structure_relay.core.config.app_config import AppConfig, LogLevel, load_config

logger = logging.getLogger(__name__)


def is_port_in_use(host: str, port: int) -> bool:
    """Check if a port is in use on a given host."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        return s.connect_ex((host, port)) == 0


def build_cli_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Run the LLM document-structuring relay server"
    )
    parser.add_argument(
        "--config",
        dest="config_file",
        metavar="PATH",
        help="YAML file adding or overriding backend definitions",
    )
    parser.add_argument("--host")
    parser.add_argument("--port", type=int)
    parser.add_argument(
        "--timeout",
        type=int,
        help="Outbound request timeout in seconds",
    )
    parser.add_argument(
        "--log-level",
        choices=[level.value for level in LogLevel],
        type=str.upper,
    )
    parser.add_argument("--log-file", help="Also write logs to this file")
    return parser


def parse_cli_args(argv: list[str] | None = None) -> argparse.Namespace:
    return build_cli_parser().parse_args(argv)


def apply_cli_args(args: argparse.Namespace) -> AppConfig:
    """Load configuration and apply command-line overrides."""
    cfg = load_config(args.config_file)
    update: dict = {}
    if args.host is not None:
        update["host"] = args.host
    if args.port is not None:
        update["port"] = args.port
    if args.timeout is not None:
        update["proxy_timeout"] = args.timeout
    if args.log_level is not None or args.log_file is not None:
        update["logging"] = cfg.logging.model_copy(
            update={
                k: v
                for k, v in (
                    ("level", LogLevel(args.log_level) if args.log_level else None),
                    ("log_file", args.log_file),
                )
                if v is not None
            }
        )
    return cfg.model_copy(update=update) if update else cfg


def _log_backend_summary(cfg: AppConfig) -> None:
    for name, backend in cfg.backends.items():
        key_info = mask_secret(backend.api_key)
        if backend.requires_api_key and not backend.api_key:
            logger.warning(
                "Backend '%s' requires an API key but none is set. API calls will fail.",
                name,
            )
        logger.info(
            "Backend '%s': protocol=%s model=%s streaming=%s api_key=%s",
            name,
            backend.protocol,
            backend.model,
            backend.streaming,
            key_info,
        )


def main(
    argv: list[str] | None = None,
    build_app_fn: Callable[[AppConfig], FastAPI] | None = None,
) -> None:
    """Parse arguments, configure logging and run uvicorn."""
    args = parse_cli_args(argv)
    try:
        cfg = apply_cli_args(args)
    except (OSError, TypeError, ValueError) as e:
        sys.stderr.write(f"\nERROR: Invalid configuration: {e}\n")
        sys.exit(1)

    configure_logging(
        level=getattr(logging, cfg.logging.level.value),
        log_file=cfg.logging.log_file,
    )
    configure_structlog(cfg.logging.structured_format)
    install_api_key_redaction_filter(
        [b.api_key for b in cfg.backends.values() if b.api_key]
    )
    _log_backend_summary(cfg)

    app = build_app_fn(cfg) if build_app_fn else build_app(cfg)

    if is_port_in_use(cfg.host, cfg.port):
        error_msg = f"Port {cfg.port} is already in use."
        logger.error(error_msg)
        sys.stderr.write(f"\nERROR: {error_msg}\n")
        sys.exit(1)

    logger.info("LLM structure relay listening on http://%s:%s", cfg.host, cfg.port)
    try:
        uvicorn.run(app, host=cfg.host, port=cfg.port, log_config=None)
    except Exception as e:
        logger.exception("Uvicorn failed to start: %s", e)
        raise


if __name__ == "__main__":
    main()
