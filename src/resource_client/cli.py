"""Console entry point for the resource API client.

Runs a single operation against the API configured through ``RESOURCE_API_*``
environment variables and prints the JSON result:

- ``resource-client get widgets 42``
- ``resource-client index widgets --param status=active --all``
- ``resource-client post widgets --data '{"name": "x"}'``
- ``resource-client delete widgets --data '{"status": "stale"}'``
"""

import argparse
import asyncio
import json
import logging
import os
import signal
import sys
from collections.abc import Sequence
from typing import Any

from .client.resource_client import ResourceClient
from .client.transport import create_transport
from .config import ClientConfig
from .errors import HTTPError, ResourceClientError

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
logger = logging.getLogger("resource_client.cli")

OPERATIONS = ("get", "index", "post", "put", "delete")


def build_parser() -> argparse.ArgumentParser:
    """Return the argument parser for the console script."""
    parser = argparse.ArgumentParser(prog="resource-client", description=__doc__.splitlines()[0])
    parser.add_argument("operation", choices=OPERATIONS)
    parser.add_argument("resource")
    parser.add_argument("id", nargs="?", default=None)
    parser.add_argument(
        "--param",
        action="append",
        default=[],
        metavar="KEY=VALUE",
        help="Query parameter; may be repeated.",
    )
    parser.add_argument("--data", default=None, help="JSON request body for post, put and filtered delete.")
    parser.add_argument("--all", action="store_true", help="Fetch every page of an index listing.")
    return parser


def parse_params(pairs: Sequence[str]) -> dict[str, str]:
    """Parse ``KEY=VALUE`` pairs into a mapping.

    Raises:
        ValueError: If a pair has no ``=``.

    """
    params: dict[str, str] = {}
    for pair in pairs:
        key, sep, value = pair.partition("=")
        if not sep or not key:
            msg = f"Invalid parameter '{pair}': expected KEY=VALUE"
            raise ValueError(msg)
        params[key] = value
    return params


async def run(args: argparse.Namespace, config: ClientConfig) -> Any:
    """Execute the parsed operation and return the decoded result."""
    params = parse_params(args.param)
    data = json.loads(args.data) if args.data else None

    async with create_transport(config) as transport:
        client = ResourceClient(config, transport=transport)
        match args.operation:
            case "get":
                return await client.get_result(args.resource, args.id, params)
            case "index" if args.all:
                return await client.index_all(args.resource, params)
            case "index":
                return (await client.index(args.resource, params)).body
            case "post":
                return (await client.post(args.resource, data)).body
            case "put":
                return (await client.put(args.resource, args.id, data)).body
            case _:
                if args.id is None and data is not None:
                    return (await client.delete_by_params(args.resource, data)).body
                return (await client.delete(args.resource, args.id)).body


def handle_interrupt(signum: int, frame: object) -> None:  # noqa: ARG001
    """Handle keyboard interrupt gracefully."""
    logger.info("Received interrupt signal, shutting down...")
    sys.exit(0)


def main(argv: Sequence[str] | None = None) -> int:
    """Entry point for the resource-client console script."""
    logging.basicConfig(
        level=LOG_LEVEL,
        format="%(asctime)s %(name)s [%(levelname)s] %(message)s",
    )
    signal.signal(signal.SIGINT, handle_interrupt)
    signal.signal(signal.SIGTERM, handle_interrupt)

    args = build_parser().parse_args(argv)
    try:
        config = ClientConfig.from_env()
        result = asyncio.run(run(args, config))
    except HTTPError as exc:
        print(f"{exc}: {json.dumps(exc.body, default=str)}", file=sys.stderr)
        return 1
    except (ResourceClientError, RuntimeError, ValueError) as exc:
        print(str(exc), file=sys.stderr)
        return 1

    print(json.dumps(result, indent=2, default=str))
    return 0


if __name__ == "__main__":
    sys.exit(main())
