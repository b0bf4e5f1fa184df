"""
bootstrap/entrypoints.py - Application entry points

Provides the CLI (inspect, prune and clear a file-backed cache) and the
diagnostics API server.
"""

from __future__ import annotations
from typing import Any, Dict, List, Optional
import argparse
import asyncio
import json
import logging
import sys

from defcache.errors import CacheError

logger = logging.getLogger("bootstrap.entrypoints")


def setup_logging(level: str = "INFO", log_file: str = None, json_format: bool = False) -> None:
    """
    Configure application logging.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR)
        log_file: Optional log file path
        json_format: Use JSON format for logs
    """
    log_level = getattr(logging, level.upper(), logging.INFO)

    if json_format:

        class JSONFormatter(logging.Formatter):
            def format(self, record):
                return json.dumps({
                    "timestamp": self.formatTime(record),
                    "level": record.levelname,
                    "logger": record.name,
                    "message": record.getMessage(),
                })

        formatter: logging.Formatter = JSONFormatter()
    else:
        formatter = logging.Formatter(
            "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
        )

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setFormatter(formatter)
    console_handler.setLevel(log_level)

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    root_logger.addHandler(console_handler)

    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(formatter)
        file_handler.setLevel(log_level)
        root_logger.addHandler(file_handler)

    # Reduce noise from third-party libraries
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)


def _print(data: Any, as_json: bool) -> None:
    if as_json:
        print(json.dumps(data, indent=2, default=str))
        return
    if isinstance(data, dict):
        for key, value in data.items():
            print(f"{key}: {value}")
    else:
        for item in data:
            print(item)


async def _run_command(app, parsed: argparse.Namespace) -> Dict[str, Any]:
    service = app.service

    if parsed.command == "stats":
        return await service.get_stats()

    if parsed.command == "graph":
        graph, order = await service.build_eviction_plan()
        return {
            "nodes": graph.to_dict(),
            "eviction_order": list(reversed(order)),
        }

    if parsed.command == "prune":
        if parsed.graph_eviction:
            service.graph_eviction_enabled = True
        evicted = await service.ensure_free_space(parsed.required_kb)
        return {"evicted": evicted, "stats": await service.get_stats()}

    if parsed.command == "clear":
        await service.clear_all({"cause": "cli", "reason": parsed.reason})
        return {"cleared": True}

    raise ValueError(f"Unknown command: {parsed.command}")


def cli_main(args: Optional[List[str]] = None) -> int:
    """
    CLI entry point.

    Args:
        args: Command line arguments (defaults to sys.argv)

    Returns:
        Exit code
    """
    parser = argparse.ArgumentParser(
        description="Persistent component definition cache",
        prog="defcache",
    )
    parser.add_argument("-c", "--config", help="Path to configuration file", default=None)
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable verbose logging")
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default="WARNING",
        help="Log level",
    )
    parser.add_argument("--json", action="store_true", help="Output in JSON format")

    sub = parser.add_subparsers(dest="command", required=True)
    sub.add_parser("stats", help="Show partition sizes and record counts")
    sub.add_parser("graph", help="Show the dependency graph and eviction order")
    prune = sub.add_parser("prune", help="Make room for incoming records")
    prune.add_argument("--required-kb", type=float, default=0.0, help="Space to free, in KB")
    prune.add_argument(
        "--graph-eviction",
        action="store_true",
        help="Evict dependency closures instead of clearing the store",
    )
    clear = sub.add_parser("clear", help="Clear all persisted definitions and actions")
    clear.add_argument("--reason", default="manual", help="Reason recorded with the clear")

    parsed = parser.parse_args(args)

    log_level = "DEBUG" if parsed.verbose else parsed.log_level
    setup_logging(level=log_level)

    try:
        from .app import CacheApp

        app = CacheApp(config_path=parsed.config)
        result = asyncio.run(_run_command(app, parsed))
        _print(result, parsed.json)
        return 0

    except KeyboardInterrupt:
        print("\nInterrupted")
        return 130
    except CacheError as e:
        logger.error(f"{type(e).__name__}: {e}")
        print(json.dumps(e.to_record().to_dict(), indent=2) if parsed.json else f"Error: {e}")
        return 2
    except Exception as e:
        logger.exception(f"Fatal error: {e}")
        return 1


def api_main(args: Optional[List[str]] = None) -> None:
    """
    API server entry point.

    Args:
        args: Command line arguments
    """
    parser = argparse.ArgumentParser(
        description="Definition cache diagnostics API",
        prog="defcache-api",
    )
    parser.add_argument("-c", "--config", help="Path to configuration file", default=None)
    parser.add_argument("-p", "--port", type=int, help="API port", default=None)
    parser.add_argument("-H", "--host", help="API host", default=None)
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default="INFO",
        help="Log level",
    )

    parsed = parser.parse_args(args)
    setup_logging(level=parsed.log_level)

    try:
        import uvicorn

        from defcache.deployment.api import create_fastapi_app
        from .app import CacheApp

        app = CacheApp(config_path=parsed.config)
        if parsed.port:
            app.config.api.port = parsed.port
        if parsed.host:
            app.config.api.host = parsed.host

        uvicorn.run(
            create_fastapi_app(app),
            host=app.config.api.host,
            port=app.config.api.port,
            log_level=parsed.log_level.lower(),
        )

    except KeyboardInterrupt:
        print("\nShutting down...")
    except Exception as e:
        logger.exception(f"Fatal error: {e}")
        sys.exit(1)


def main():
    """Main entry point for the package."""
    if len(sys.argv) > 1 and sys.argv[1] == "api":
        api_main(sys.argv[2:])
    else:
        sys.exit(cli_main())


if __name__ == "__main__":
    main()
