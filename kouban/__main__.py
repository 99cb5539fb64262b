"""
Kouban Main Entry Point

Break a script file down into a JSON table, or run the API server.
"""

import sys
import json
import asyncio
import argparse
from dataclasses import replace
from pathlib import Path

from kouban.core.logging_config import LogLevel, setup_logging, create_session_log, get_logger
from kouban.core.config import load_config
from kouban.core.constants import MergePolicy
from kouban.core.exceptions import KoubanError


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="kouban",
        description="Kouban - Scene breakdown tables from screenplay text"
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    run_parser = subparsers.add_parser("run", help="Break down a script file")
    run_parser.add_argument("script", type=str, help="Path to a plain-text script")
    run_parser.add_argument(
        "--output", "-o",
        type=str,
        help="Write the breakdown JSON here (default: stdout)"
    )
    run_parser.add_argument("--chunk-size", type=int, help="Max characters per chunk")
    run_parser.add_argument("--overlap", type=int, help="Characters repeated from the previous chunk")
    run_parser.add_argument("--batch-size", type=int, help="Chunks extracted concurrently")
    run_parser.add_argument(
        "--merge-policy",
        choices=[policy.value for policy in MergePolicy],
        help="How duplicate scenes combine their characters"
    )
    run_parser.add_argument("--config", "-c", type=str, help="Path to configuration file")
    run_parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")
    run_parser.add_argument("--log-file", action="store_true", help="Also write a session log under logs_dir")

    serve_parser = subparsers.add_parser("serve", help="Run the API server")
    serve_parser.add_argument("--host", type=str, help="Bind address")
    serve_parser.add_argument("--port", type=int, help="Port for the API server")

    return parser


def apply_overrides(config, args):
    """Fold command-line flags into the loaded pipeline config."""
    overrides = {}
    if args.chunk_size is not None:
        overrides["chunk_size"] = args.chunk_size
    if args.overlap is not None:
        overrides["chunk_overlap"] = args.overlap
    if args.batch_size is not None:
        overrides["batch_size"] = args.batch_size
    if args.merge_policy is not None:
        overrides["merge_policy"] = MergePolicy(args.merge_policy)
    if overrides:
        config.pipeline = replace(config.pipeline, **overrides)
        config.pipeline.validate()
    return config


def print_progress(completed: int, total: int) -> None:
    print(f"\rExtracting chunks: {completed}/{total}", end="", file=sys.stderr, flush=True)
    if completed == total:
        print(file=sys.stderr)


def run_breakdown(args) -> int:
    from kouban.pipelines.breakdown_pipeline import breakdown_script

    logger = get_logger("main")

    try:
        config = apply_overrides(load_config(args.config), args)
    except KoubanError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 1

    verbose = args.verbose or config.verbose_logging
    if args.log_file:
        log_path = create_session_log(config.logs_dir, verbose=verbose)
        logger.info(f"Session log: {log_path}")
    elif verbose and not args.verbose:
        setup_logging(level=LogLevel.DEBUG, verbose=True)

    script_path = Path(args.script)
    try:
        text = script_path.read_text(encoding="utf-8")
    except OSError as e:
        print(f"Could not read {script_path}: {e}", file=sys.stderr)
        return 1

    try:
        result = asyncio.run(breakdown_script(text, config=config, progress_callback=print_progress))
    except KoubanError as e:
        logger.error(f"Breakdown failed: {e}")
        print(f"Error: {e.message}", file=sys.stderr)
        return 1

    payload = result.output.to_dict()
    payload["stats"] = {
        key: value for key, value in result.metadata.items() if key != "steps_completed"
    }
    output = json.dumps(payload, ensure_ascii=False, indent=2)

    if args.output:
        Path(args.output).write_text(output + "\n", encoding="utf-8")
        logger.info(f"Wrote {len(result.output.scenes)} scene(s) to {args.output}")
    else:
        print(output)
    return 0


def run_server(args) -> int:
    from kouban.api.main import start_server

    start_server(host=args.host, port=args.port)
    return 0


def main(argv=None) -> int:
    """Main entry point for the Kouban command line."""
    args = build_parser().parse_args(argv)

    verbose = getattr(args, "verbose", False)
    setup_logging(level=LogLevel.DEBUG if verbose else LogLevel.INFO, verbose=verbose)

    if args.command == "run":
        return run_breakdown(args)
    return run_server(args)


if __name__ == "__main__":
    sys.exit(main())
