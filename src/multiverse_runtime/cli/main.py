#!/usr/bin/env python3
"""
Multiverse CLI - Run workers and maintain their shared runtimes
"""

import argparse
import json
import sys
import time
from pathlib import Path
from typing import Any, Dict, List, Optional

from multiverse_runtime import __version__
from multiverse_runtime.cli.formatter import ResultFormatter
from multiverse_runtime.core.manager import WorkerManager, validate_worker_name
from multiverse_runtime.core.process import find_processes, kill_process_tree
from multiverse_runtime.core.resolver import WorkerResolver
from multiverse_runtime.drivers import DRIVER_REGISTRY
from multiverse_runtime.errors import ExitCode, MultiverseError
from multiverse_runtime.settings import Settings
from multiverse_runtime.utils.loggers import configure_logging


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser with run, update and clear subcommands"""
    parser = argparse.ArgumentParser(
        prog="multiverse",
        description="Multiverse CLI - Run multi-language workers over a JSON stdin/stdout contract"
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}"
    )
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default=None,
        help="Logging level (default: from settings)"
    )
    parser.add_argument(
        "--workers-path",
        type=str,
        help="Workers root directory (default: from settings)"
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    # run
    run_parser = subparsers.add_parser("run", help="Run a worker")
    run_parser.add_argument("worker", type=str, help="Worker name")

    payload_group = run_parser.add_mutually_exclusive_group()
    payload_group.add_argument(
        "--payload", "-p",
        type=str,
        default="{}",
        help="Payload as JSON object string (default: {})"
    )
    payload_group.add_argument(
        "--payload-file", "-f",
        type=str,
        help="Read payload from JSON file"
    )

    run_parser.add_argument(
        "--driver", "-d",
        type=str,
        help="Language driver, overrides the payload's driver key"
    )
    run_parser.add_argument(
        "--timeout", "-t",
        type=float,
        help="Timeout in seconds, overrides the payload's _timeout key"
    )
    run_parser.add_argument(
        "--scan",
        action="store_true",
        help="Scan the worker source for dangerous code before running"
    )
    run_parser.add_argument(
        "--format",
        choices=["pretty", "json", "yaml"],
        default="pretty",
        help="Output format (default: pretty)"
    )
    run_parser.add_argument(
        "--output", "-o",
        type=str,
        help="Save formatted result to file"
    )
    run_parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Show extra details in the output"
    )

    # update
    update_parser = subparsers.add_parser("update", help="Install dependencies for a language runtime")
    update_parser.add_argument(
        "--lang",
        required=True,
        choices=sorted(DRIVER_REGISTRY),
        help="Language to update"
    )

    # clear
    clear_parser = subparsers.add_parser("clear", help="Kill running worker processes")
    clear_parser.add_argument(
        "worker",
        nargs="?",
        help="Worker name; omit to kill every process running from the workers root"
    )

    return parser


def read_json_file(file_path: str) -> str:
    """Read and validate JSON file"""
    try:
        with open(file_path, 'r', encoding='utf-8') as f:
            content = f.read()
            json.loads(content)
            return content
    except FileNotFoundError:
        print(f"Error: File not found: {file_path}", file=sys.stderr)
        sys.exit(ExitCode.INVALID_INPUT)
    except json.JSONDecodeError as e:
        print(f"Error: Invalid JSON in file {file_path}: {e}", file=sys.stderr)
        sys.exit(ExitCode.INVALID_INPUT)
    except OSError as e:
        print(f"Error reading file {file_path}: {e}", file=sys.stderr)
        sys.exit(ExitCode.INVALID_INPUT)


def read_payload(args: argparse.Namespace) -> Dict[str, Any]:
    """Load the payload object from --payload or --payload-file, exiting with 2 when invalid"""
    raw = read_json_file(args.payload_file) if args.payload_file else (args.payload or "{}")

    try:
        payload = json.loads(raw)
    except json.JSONDecodeError as e:
        print(f"Error: Invalid JSON payload: {e}", file=sys.stderr)
        print(f"Payload was: {raw}", file=sys.stderr)
        sys.exit(ExitCode.INVALID_INPUT)

    if not isinstance(payload, dict):
        print("Error: Payload must be a JSON object", file=sys.stderr)
        sys.exit(ExitCode.INVALID_INPUT)

    if args.driver:
        payload["driver"] = args.driver
    if args.timeout is not None:
        payload["_timeout"] = args.timeout
    return payload


def load_settings(args: argparse.Namespace) -> Settings:
    """Settings from env/.env with command-line overrides applied"""
    settings = Settings()
    if args.workers_path:
        settings.workers_path = args.workers_path
    if getattr(args, "scan", False):
        settings.security.scan_for_dangerous_code = True
    if args.log_level:
        settings.log_level = args.log_level
    return settings


def cmd_run(args: argparse.Namespace, settings: Settings) -> int:
    payload = read_payload(args)
    formatter = ResultFormatter(format=args.format, verbose=args.verbose)
    manager = WorkerManager(settings=settings)

    start_time = time.perf_counter()
    try:
        result = manager.run(args.worker, payload)
    except MultiverseError as e:
        print(formatter.format_error(args.worker, e), file=sys.stderr)
        return int(e.exit_status)
    duration = time.perf_counter() - start_time

    output = formatter.format_result(args.worker, result, duration)
    print(output)

    if args.output:
        try:
            Path(args.output).write_text(output, encoding="utf-8")
        except OSError as e:
            print(f"Error saving result to file: {e}", file=sys.stderr)
            return ExitCode.EXECUTION_FAILED
        print(f"\nResult saved to: {args.output}", file=sys.stderr)

    return ExitCode.SUCCESS


def cmd_update(args: argparse.Namespace, settings: Settings) -> int:
    manager = WorkerManager(settings=settings)
    try:
        manager.driver(args.lang).install_dependencies()
    except MultiverseError as e:
        print(f"Error: {e}", file=sys.stderr)
        error_output = getattr(e, "error_output", None)
        if error_output:
            print(error_output.rstrip(), file=sys.stderr)
        return int(e.exit_status)

    print(f"✓ {args.lang} dependencies updated successfully")
    return ExitCode.SUCCESS


def clear_targets(manager: WorkerManager, worker: Optional[str]) -> List[Path]:
    """Paths whose processes ``clear`` kills: every location ``worker`` may resolve to, or the whole root"""
    root = manager.settings.workers_root
    if worker is None:
        return [root]

    validate_worker_name(worker)
    targets: List[Path] = []
    for name in manager.settings.drivers:
        if name not in manager.registry:
            continue
        driver = manager.driver(name)
        for path in WorkerResolver.candidate_paths(root, driver.name, worker, driver.extension):
            if path not in targets:
                targets.append(path)
    return targets


def cmd_clear(args: argparse.Namespace, settings: Settings) -> int:
    try:
        targets = clear_targets(WorkerManager(settings=settings), args.worker)
    except MultiverseError as e:
        print(f"Error: {e}", file=sys.stderr)
        return int(e.exit_status)

    if args.worker:
        print(f"Searching for processes matching worker: {args.worker}")
    else:
        print("Searching for all multiverse worker processes...")

    killed = []
    for proc in find_processes(targets):
        for pid in kill_process_tree(proc.pid):
            if pid not in killed:
                killed.append(pid)
                print(f"  Killed PID: {pid}")

    if killed:
        print(f"✓ Killed {len(killed)} process(es)")
    else:
        print("No matching processes found")
    return ExitCode.SUCCESS


COMMANDS = {
    "run": cmd_run,
    "update": cmd_update,
    "clear": cmd_clear,
}


def main(argv: Optional[List[str]] = None) -> int:
    """Main CLI function"""
    args = build_parser().parse_args(argv)
    settings = load_settings(args)
    configure_logging(
        settings.log_level,
        settings.log_format,
        channel=settings.logging.channel if settings.logging.enabled else None,
    )
    return COMMANDS[args.command](args, settings)


def entry_point():
    """CLI entry point"""
    try:
        sys.exit(main())
    except KeyboardInterrupt:
        print("\nInterrupted by user", file=sys.stderr)
        sys.exit(130)


if __name__ == "__main__":
    entry_point()
