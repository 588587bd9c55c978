"""Command-line entry point: ``path-walker`` / ``python -m path_walker``."""

from __future__ import annotations

import argparse
import logging
import sys

from path_walker.app import SESSION_KEY, create_app
from path_walker.config import ServerConfig
from path_walker.logging_utils import setup_logging
from sssp_runtime.errors import DeviceInitError
from sssp_runtime.session import BACKEND_NAMES

logger = logging.getLogger("path_walker")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="path-walker",
        description="Serve single-source shortest paths computed on a GPU",
    )
    parser.add_argument("--host", default=None, help="Bind address (default: 127.0.0.1)")
    parser.add_argument("--port", type=int, default=None, help="Listen port (default: 8080)")
    parser.add_argument("--backend", choices=BACKEND_NAMES, default=None,
                        help="Compute backend (default: opencl)")
    parser.add_argument("--platform-index", type=int, default=None,
                        help="OpenCL platform index (default: 0)")
    parser.add_argument("--device-index", type=int, default=None,
                        help="Device index on the platform (default: 0)")
    parser.add_argument("--early-exit", action="store_true", default=None,
                        help="Stop relaxing once a round commits nothing")
    parser.add_argument("--log-level", default=None,
                        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
                        help="Log level (default: INFO)")
    parser.add_argument("--log-file", default=None, help="Also log to this rotating file")
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)

    try:
        config = ServerConfig.from_env().with_overrides(
            host=args.host,
            port=args.port,
            backend=args.backend,
            platform_index=args.platform_index,
            device_index=args.device_index,
            early_exit=args.early_exit,
            log_level=args.log_level,
            log_file=args.log_file,
        )
    except ValueError as e:
        print(f"Invalid configuration: {e}", file=sys.stderr)
        return 2

    setup_logging(config.log_level, config.log_file)

    try:
        app = create_app(config)
    except DeviceInitError as e:
        logger.critical("Failed to initialize compute device: %s", e)
        return 1

    session = app.extensions[SESSION_KEY]
    logger.info("Listening on %s:%d (backend=%s, early_exit=%s)",
                config.host, config.port, session.backend.name, config.early_exit)
    try:
        app.run(host=config.host, port=config.port, threaded=True)
    finally:
        session.close()
    return 0


if __name__ == "__main__":
    sys.exit(main())
