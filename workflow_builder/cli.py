"""Command-line interface for the workflow builder.

Usage:
    workflow-builder validate candidate.json [--existing current.json]
    workflow-builder run-step shopify/get-order --input '{"orderId": "1001"}' \\
        --credentials '{"SHOPIFY_STORE_DOMAIN": "acme.myshopify.com", "SHOPIFY_ACCESS_TOKEN": "..."}'
    workflow-builder list-steps
    workflow-builder serve --port 8000
"""

from __future__ import annotations

import asyncio
import json
import logging
import sys
from argparse import ArgumentParser
from pathlib import Path
from typing import Any

_CLI_INTEGRATION_ID = "cli"


def _load_json_arg(value: str | None, label: str) -> Any:
    """Parse a JSON literal, or the contents of a file when given '@path'."""
    if value is None:
        return None
    text = Path(value[1:]).read_text(encoding="utf-8") if value.startswith("@") else value
    try:
        return json.loads(text)
    except json.JSONDecodeError as e:
        raise SystemExit(f"{label} is not valid JSON: {e}") from e


def _cmd_validate(args) -> int:
    from workflow_builder.graph import IncompleteNodeConfigurationError, validate_graph

    candidate = Path(args.file).read_text(encoding="utf-8")
    existing = Path(args.existing).read_text(encoding="utf-8") if args.existing else None
    try:
        result = validate_graph(candidate, existing)
    except IncompleteNodeConfigurationError as e:
        print(f"error: {e}", file=sys.stderr)
        return 1

    for warning in result.warnings:
        print(f"warning: {warning.message}", file=sys.stderr)
    print(json.dumps(result.graph.to_dict(), indent=2))
    return 0


async def _run_step(action_type: str, raw_input: dict[str, Any], credentials: dict | None, verbose: bool) -> int:
    from workflow_builder.credentials import StaticCredentialResolver
    from workflow_builder.steps import MemoryStepRecorder, default_registry

    resolver = None
    if credentials is not None:
        resolver = StaticCredentialResolver({_CLI_INTEGRATION_ID: credentials})
        raw_input = {**raw_input, "integrationId": _CLI_INTEGRATION_ID}

    recorder = MemoryStepRecorder() if verbose else None
    result = await default_registry().run(action_type, raw_input, resolver=resolver, recorder=recorder)
    print(json.dumps(result.to_dict(), indent=2, default=str))
    if recorder is not None:
        for entry in recorder.completed:
            print(f"[{entry.step}] success={entry.success} duration_ms={entry.duration_ms:.1f}", file=sys.stderr)
    return 0 if result.success else 1


def _cmd_run_step(args) -> int:
    raw_input = _load_json_arg(args.input, "--input") or {}
    if not isinstance(raw_input, dict):
        raise SystemExit("--input must be a JSON object")
    credentials = _load_json_arg(args.credentials, "--credentials")
    return asyncio.run(_run_step(args.action_type, raw_input, credentials, args.verbose))


def _cmd_list_steps(_args) -> int:
    from workflow_builder.steps import default_registry

    for entry in default_registry().entries():
        print(f"{entry.action_type:<32} {entry.label}")
    return 0


def _cmd_serve(args) -> int:
    from workflow_builder.api import serve

    serve(host=args.host, port=args.port, reload=args.reload)
    return 0


def main(argv: list[str] | None = None) -> None:
    try:
        from dotenv import load_dotenv
        load_dotenv()
    except ImportError:
        pass

    from workflow_builder.client.config import Settings

    logging.basicConfig(
        level=Settings.from_env().log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    parser = ArgumentParser(prog="workflow-builder", description="Workflow builder tools")
    sub = parser.add_subparsers(dest="command", required=True)

    p_validate = sub.add_parser("validate", help="Validate a candidate workflow graph")
    p_validate.add_argument("file", help="Candidate graph JSON file")
    p_validate.add_argument("--existing", help="Graph being replaced (JSON file)")
    p_validate.set_defaults(func=_cmd_validate)

    p_run = sub.add_parser("run-step", help="Run one action step")
    p_run.add_argument("action_type", help="e.g. shopify/get-order")
    p_run.add_argument("--input", default="{}", help="Step input JSON, or @file")
    p_run.add_argument("--credentials", help="Credential set JSON, or @file")
    p_run.add_argument("--verbose", action="store_true", help="Print invocation timing")
    p_run.set_defaults(func=_cmd_run_step)

    p_list = sub.add_parser("list-steps", help="List registered action types")
    p_list.set_defaults(func=_cmd_list_steps)

    p_serve = sub.add_parser("serve", help="Start the HTTP API server")
    p_serve.add_argument("--host", default="0.0.0.0")
    p_serve.add_argument("--port", type=int, default=8000)
    p_serve.add_argument("--reload", action="store_true")
    p_serve.set_defaults(func=_cmd_serve)

    args = parser.parse_args(argv)
    sys.exit(args.func(args))


if __name__ == "__main__":
    main()
