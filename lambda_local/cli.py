#!/usr/bin/env python3
"""
lambda-local command line.

    lambda-local run       serve an API definition locally
    lambda-local execute   run one handler with an event file
"""

from __future__ import annotations

import argparse
import asyncio
import json
import os
import sys
import uuid
from typing import Dict, List, Optional

from lambda_local.common.core.logging_config import setup_logging


def parse_environment(value: str) -> Dict[str, str]:
    """
    `KEY=VALUE,OTHER=VALUE` into a dict.

    `\\,` and `\\=` escape separators; pairs without `=` are ignored.
    """
    pairs: List[List[str]] = []
    current: List[str] = []
    escaped = False
    for char in value:
        if escaped:
            current.append("\\" + char)
            escaped = False
        elif char == "\\":
            escaped = True
        elif char == ",":
            pairs.append(current)
            current = []
        else:
            current.append(char)
    if escaped:
        current.append("\\")
    pairs.append(current)

    result: Dict[str, str] = {}
    for pair in pairs:
        if "=" not in pair:
            continue
        split = pair.index("=")
        key = _unescape(pair[:split])
        if key:
            result[key] = _unescape(pair[split + 1 :])
    return result


def _unescape(chunks: List[str]) -> str:
    return "".join(chunk[1:] if len(chunk) == 2 and chunk[0] == "\\" else chunk for chunk in chunks)


def parse_path(value: str) -> str:
    return os.path.abspath(os.path.expanduser(value))


def _merge_environment(items: Optional[List[Dict[str, str]]]) -> Dict[str, str]:
    merged: Dict[str, str] = {}
    for item in items or []:
        merged.update(item)
    return merged


def register_run(subparsers) -> None:
    parser = subparsers.add_parser("run", help="Serve an API definition locally")
    parser.add_argument("-p", "--port", type=int, help="Port to use locally (default 3000)")
    parser.add_argument("--host", help="Interface to bind (default 127.0.0.1)")
    parser.add_argument(
        "-a", "--api-file", type=parse_path, help='Path to Swagger API spec (default "./api.json")'
    )
    parser.add_argument(
        "-f", "--functions-root", type=parse_path, help='Handler directory (default "./lambdas")'
    )
    parser.add_argument(
        "-e",
        "--environment",
        type=parse_environment,
        action="append",
        help="Environment variables for handlers as KEY=VALUE pairs",
    )
    parser.add_argument(
        "--mirror-environment",
        action="store_true",
        help="Mirror this process' environment in the handlers",
    )
    parser.add_argument("--ignore-timeout", action="store_true", help="Ignore handler timeouts")
    parser.add_argument("--timeout", type=float, help="Fixed timeout (seconds) for every handler")
    parser.add_argument("--stage", help="Stage name reported to handlers")
    parser.add_argument("--no-reload", action="store_true", help="Do not watch the API file")
    parser.set_defaults(func=run_command)


def register_execute(subparsers) -> None:
    parser = subparsers.add_parser("execute", help="Run one handler with an event file")
    parser.add_argument(
        "-f",
        "--file",
        type=parse_path,
        default=parse_path("lambda_function.py"),
        help="Handler module (default ./lambda_function.py)",
    )
    parser.add_argument(
        "--handler", default="lambda_handler", help="Entry point name (default lambda_handler)"
    )
    parser.add_argument(
        "-E",
        "--event",
        type=parse_path,
        default=parse_path("event.json"),
        help="Event JSON file (default ./event.json)",
    )
    parser.add_argument(
        "--env",
        "--environment",
        dest="environment",
        type=parse_environment,
        action="append",
        help="Environment variables as KEY=VALUE pairs",
    )
    parser.add_argument("-t", "--timeout", type=float, default=6.0, help="Timeout in seconds")
    parser.set_defaults(func=execute_command)


def run_command(args: argparse.Namespace) -> int:
    import uvicorn

    from lambda_local.gateway.config import GatewayConfig

    overrides = {
        "BIND_PORT": args.port,
        "BIND_HOST": args.host,
        "API_SPEC_PATH": args.api_file,
        "FUNCTIONS_ROOT": args.functions_root,
        "TIMEOUT_OVERRIDE_SECONDS": args.timeout,
        "STAGE": args.stage,
    }
    settings = {key: value for key, value in overrides.items() if value is not None}
    if args.environment:
        settings["SANDBOX_ENVIRONMENT"] = _merge_environment(args.environment)
    if args.mirror_environment:
        settings["MIRROR_ENVIRONMENT"] = True
    if args.ignore_timeout:
        settings["IGNORE_TIMEOUT"] = True
    if args.no_reload:
        settings["CONFIG_RELOAD_ENABLED"] = False

    gateway_config = GatewayConfig(**settings)
    if not os.path.isfile(gateway_config.API_SPEC_PATH):
        raise FileNotFoundError(f"API definition not found: {gateway_config.API_SPEC_PATH}")

    setup_logging(gateway_config.LOG_CONFIG_PATH, gateway_config.LOG_LEVEL)

    from lambda_local.gateway.main import create_app

    uvicorn.run(
        create_app(gateway_config),
        host=gateway_config.BIND_HOST,
        port=gateway_config.BIND_PORT,
        log_config=None,
    )
    return 0


def execute_command(args: argparse.Namespace) -> int:
    from lambda_local.gateway.config import GatewayConfig
    from lambda_local.gateway.models.handler import HandlerTarget
    from lambda_local.gateway.services.lambda_invoker import build_environment
    from lambda_local.sandbox import ExecutionRequest, ExecutionSandbox

    with open(args.event, "r", encoding="utf-8") as f:
        event = json.load(f)

    gateway_config = GatewayConfig(SANDBOX_ENVIRONMENT=_merge_environment(args.environment))
    setup_logging(gateway_config.LOG_CONFIG_PATH, gateway_config.LOG_LEVEL)

    target = HandlerTarget(
        name=os.path.basename(args.file),
        handler_path=args.file,
        function_name=args.handler,
        timeout_ms=int(args.timeout * 1000),
    )
    request_id = str(uuid.uuid4())
    request = ExecutionRequest(
        handler_path=target.handler_path,
        function_name=target.function_name,
        event=event,
        context={
            "functionName": target.name,
            "invokedFunctionArn": "$LATEST",
            "memoryLimitInMB": str(target.memory_size),
            "awsRequestId": request_id,
        },
        timeout_ms=target.timeout_ms,
        env=build_environment(gateway_config, target),
        request_id=request_id,
    )

    print(f"Executing {target.handler_path}:{target.function_name} with {args.event}")
    result = asyncio.run(ExecutionSandbox().execute(request))
    if result.success:
        print(f"Result: {result.as_text()}")
        return 0

    print(f"Failed ({result.kind.value}): {result.message}", file=sys.stderr)
    return 1


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="lambda-local",
        description="Run API Gateway + Lambda handlers locally",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)
    register_run(subparsers)
    register_execute(subparsers)
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        return int(args.func(args))
    except (ValueError, FileNotFoundError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
