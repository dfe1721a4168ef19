"""
CLI Module

Architectural Intent:
- Command-line interface for the EC2 CPI adapter
- Lists and describes actions, runs a single action, or serves the
  line-delimited JSON host protocol on stdin/stdout
- Delegates to the host extension via the composition root
- Supports --verbose/--debug flags for log level control
"""

import argparse
import asyncio
import json
import logging
import sys
import traceback
from typing import Any, Optional

from cpi_aws.composition_root import create_container
from cpi_aws.infrastructure.config import load_config
from cpi_aws.infrastructure.host.stdio_host import run_stdio
from cpi_aws.infrastructure.logging import configure_logging, resolve_level
from cpi_aws.infrastructure.telemetry.otel_exporter import OTELConfig, configure_telemetry
from cpi_aws.application.actions.catalog import get_action_definition, list_actions


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="cpi-aws",
        description="EC2 provider for the Cloud Provider Interface",
    )
    parser.add_argument(
        "--verbose", "-v", action="store_true", help="Enable verbose output"
    )
    parser.add_argument(
        "--debug", action="store_true", help="Enable debug output with tracebacks"
    )
    parser.add_argument(
        "--json-logs", action="store_true", help="Emit structured JSON logs on stderr"
    )
    parser.add_argument(
        "--config", default=None, help="Path to config file (default: cpi_aws.json)"
    )
    parser.add_argument(
        "--simulate", action="store_true",
        help="Use the in-memory EC2 backend instead of AWS",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    subparsers.add_parser("actions", help="List supported actions")

    describe_parser = subparsers.add_parser(
        "describe", help="Show the parameters of an action"
    )
    describe_parser.add_argument("action", help="Action name")

    run_parser = subparsers.add_parser("run", help="Run a single action")
    run_parser.add_argument("action", help="Action name")
    run_parser.add_argument(
        "-p", "--param", action="append", default=[], metavar="KEY=VALUE",
        help="Action parameter (repeatable)",
    )
    run_parser.add_argument(
        "--params", default=None, help="Action parameters as a JSON object"
    )
    run_parser.add_argument("--region", default=None, help="Override the region")

    subparsers.add_parser(
        "serve", help="Serve JSON-lines requests on stdin/stdout"
    )
    return parser


def _parse_params(args: argparse.Namespace) -> dict[str, Any]:
    """Merge --params JSON, -p KEY=VALUE pairs and --region, in that order."""
    params: dict[str, Any] = {}
    if args.params:
        loaded = json.loads(args.params)
        if not isinstance(loaded, dict):
            raise ValueError("--params must be a JSON object")
        params.update(loaded)
    for pair in args.param:
        key, sep, value = pair.partition("=")
        if not sep or not key:
            raise ValueError(f"Expected KEY=VALUE, got {pair!r}")
        params[key] = value
    if args.region:
        params["region"] = args.region
    return params


async def async_main(argv: Optional[list[str]] = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)

    try:
        config = load_config(args.config)
    except ValueError as e:
        print(f"[-] Configuration error: {e}", file=sys.stderr)
        return 1

    # Configure logging based on flags
    if args.debug:
        level = logging.DEBUG
    elif args.verbose:
        level = logging.INFO
    else:
        level = resolve_level(config.log_level)
    configure_logging(level=level, json_format=args.json_logs)

    verbose = args.verbose or args.debug

    if args.command == "actions":
        for name in list_actions():
            print(name)
        return 0

    if args.command == "describe":
        definition = get_action_definition(args.action)
        if definition is None:
            print(f"[-] Unknown action: {args.action}", file=sys.stderr)
            return 1
        print(json.dumps(definition.to_dict(), indent=2))
        return 0

    if args.command not in ("run", "serve"):
        parser.print_help()
        return 0

    try:
        configure_telemetry(
            OTELConfig(
                endpoint=config.telemetry.endpoint,
                service_name=config.telemetry.service_name,
                insecure=config.telemetry.insecure,
            )
        )
    except ValueError as e:
        print(f"[-] Telemetry configuration error: {e}", file=sys.stderr)
        return 1

    container = create_container(config, simulate=args.simulate)

    if args.command == "serve":
        try:
            await run_stdio(container.extension)
        except KeyboardInterrupt:
            print("\n[*] Stdio host stopped.", file=sys.stderr)
        return 0

    try:
        params = _parse_params(args)
    except ValueError as e:
        print(f"[-] Invalid parameters: {e}", file=sys.stderr)
        return 2

    try:
        result = await container.extension.dispatch(args.action, params)
    except Exception as e:
        print(f"[-] {args.action} failed: {e}", file=sys.stderr)
        if verbose:
            traceback.print_exc()
        return 1

    print(json.dumps(result.to_dict(), indent=2))
    return 0 if result.ok else 1


def main():
    sys.exit(asyncio.run(async_main()))


if __name__ == "__main__":
    main()
