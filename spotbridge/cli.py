"""Command-line interface for spotbridge."""

from __future__ import annotations

import argparse
import sys

from pathlib import Path

from . import log
from .exceptions import ConfigurationError


def main(argv: list[str] | None = None) -> int:
    """Run the main CLI entry point.

    Returns
    -------
    int
        Exit code.
    """
    parser = argparse.ArgumentParser(
        prog="spotbridge",
        description="Spotify OAuth2 bridge and Web API proxy",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # serve command
    serve_parser = subparsers.add_parser(
        "serve",
        help="Run the bridge HTTP server",
    )
    serve_parser.add_argument(
        "--host",
        type=str,
        default=None,
        help="Bind address (uses config default)",
    )
    serve_parser.add_argument(
        "--port",
        "-p",
        type=int,
        default=None,
        help="Port (uses config default)",
    )
    serve_parser.add_argument(
        "--reload",
        action="store_true",
        help="Reload on code changes (development)",
    )

    # config command
    config_parser = subparsers.add_parser(
        "config",
        help="Show or export configuration",
    )
    config_group = config_parser.add_mutually_exclusive_group()
    config_group.add_argument(
        "--show",
        action="store_true",
        help="Show current configuration (secrets redacted)",
    )
    config_group.add_argument(
        "--env",
        action="store_true",
        help="Export configuration as environment variables",
    )
    config_parser.add_argument(
        "--output",
        "-o",
        type=str,
        help="Output file path (default: stdout)",
    )

    args = parser.parse_args(argv)

    if args.command == "serve":
        return handle_serve(args)
    if args.command == "config":
        return handle_config(args)
    parser.print_help()
    return 0


def handle_serve(args: argparse.Namespace) -> int:
    """Handle the serve command.

    Credentials are checked before uvicorn starts so a misconfigured
    process exits instead of serving.

    Parameters
    ----------
    args : argparse.Namespace
        Parsed command line arguments.

    Returns
    -------
    int
        Exit code.
    """
    import uvicorn

    from .config import get_settings

    try:
        settings = get_settings()
        settings.spotify.require_credentials()
    except ConfigurationError as exc:
        log.error(str(exc))
        return 1

    server = settings.server
    host = args.host or server.host
    port = args.port or server.port
    log.info(f"Serving on http://{host}:{port} (callback {settings.spotify.redirect_uri})")

    uvicorn.run(
        "spotbridge.app:create_app",
        factory=True,
        host=host,
        port=port,
        reload=args.reload,
        log_level=server.log_level,
        proxy_headers=server.proxy_headers,
        forwarded_allow_ips=server.forwarded_allow_ips,
    )
    return 0


def handle_config(args: argparse.Namespace) -> int:
    """Handle the config command.

    Parameters
    ----------
    args : argparse.Namespace
        Parsed command line arguments.

    Returns
    -------
    int
        Exit code.
    """
    from .config import BridgeSettings

    try:
        settings = BridgeSettings()
    except ConfigurationError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1

    output = settings.to_env() if args.env else settings.show()

    if args.output:
        Path(args.output).write_text(output, encoding="utf-8")
        print(f"Configuration written to {args.output}")
    else:
        print(output)

    return 0


if __name__ == "__main__":
    sys.exit(main())
