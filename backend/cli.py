"""Hash Pass CLI — init, serve, and client commands.

Usage:
    python cli.py init                  Create .env from .env.example
    python cli.py serve [PORT]          Start the service (default port 8080)
    python cli.py submit PASSWORD       POST a password, print the task id
    python cli.py result TASK_ID        Print the hash for a finished task
    python cli.py stats                 Print {"total": n, "average": µs}
    python cli.py shutdown              Drain the service and stop it
"""

from __future__ import annotations

import argparse
import json
import logging
import shutil
import sys
from pathlib import Path

logging.basicConfig(level=logging.INFO, format="%(message)s")
logger = logging.getLogger("hashpass-cli")

DEFAULT_URL = "http://127.0.0.1:8080"


def cmd_init(args):
    """Copy .env.example → .env (never overwrites)."""
    root = Path(__file__).resolve().parent.parent
    env_example = root / ".env.example"
    env_file = root / ".env"
    if env_file.exists():
        logger.info("[=] .env already exists")
    elif env_example.exists():
        shutil.copy(env_example, env_file)
        logger.info("[+] Created .env from .env.example")
    else:
        logger.warning("[!] No .env.example found")


def parse_port(raw: str | None, default: int) -> int:
    """Validate a port argument, exiting the process when it is unusable."""
    from settings import validate_port

    if raw is None:
        return default
    try:
        port = int(raw)
    except ValueError:
        logger.error(f"Invalid port value '{raw}'")
        sys.exit(1)
    try:
        return validate_port(port)
    except ValueError as e:
        logger.error(str(e))
        sys.exit(1)


def cmd_serve(args):
    """Start uvicorn in-process so /shutdown can stop it."""
    from settings import settings

    port = parse_port(args.port, settings.PORT)
    host = args.host or settings.HOST
    # basicConfig above already installed the handler; only the level changes.
    logging.getLogger().setLevel(settings.LOG_LEVEL.upper())

    from main import serve
    serve(host, port)


# ---------------------------------------------------------------------------
#  Client commands
# ---------------------------------------------------------------------------

def _client(args):
    from client import HashClient
    return HashClient(base_url=args.url)


def _run_client(args, fn):
    from client import HashClientError

    with _client(args) as c:
        try:
            out = fn(c)
        except HashClientError as e:
            logger.error(e.message or f"HTTP {e.status_code}")
            sys.exit(1)
    print(out if isinstance(out, str) else json.dumps(out))


def cmd_submit(args):
    _run_client(args, lambda c: c.submit(args.password))


def cmd_result(args):
    _run_client(args, lambda c: c.result(args.task_id))


def cmd_stats(args):
    _run_client(args, lambda c: c.stats())


def cmd_shutdown(args):
    # The server only answers once every queued task is done.
    _run_client(args, lambda c: c.shutdown(timeout=None if args.timeout <= 0 else args.timeout))


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="hashpass",
        description="Deferred password hashing service",
    )
    sub = parser.add_subparsers(dest="command", help="Available commands")

    sub.add_parser("init", help="Create .env from .env.example")

    p_serve = sub.add_parser("serve", help="Start the service")
    p_serve.add_argument("port", nargs="?", help="Listen port (1024 < port <= 65535)")
    p_serve.add_argument("--host", help="Bind host")

    client_parent = argparse.ArgumentParser(add_help=False)
    client_parent.add_argument("--url", default=DEFAULT_URL, help=f"Service URL (default: {DEFAULT_URL})")

    p_submit = sub.add_parser("submit", parents=[client_parent], help="Submit a password")
    p_submit.add_argument("password")

    p_result = sub.add_parser("result", parents=[client_parent], help="Fetch a hash by task id")
    p_result.add_argument("task_id")

    sub.add_parser("stats", parents=[client_parent], help="Show request statistics")

    p_shutdown = sub.add_parser("shutdown", parents=[client_parent], help="Drain and stop the service")
    p_shutdown.add_argument("--timeout", type=float, default=0,
                            help="Seconds to wait for the drain (default: no limit)")
    return parser


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)

    commands = {
        "init": cmd_init,
        "serve": cmd_serve,
        "submit": cmd_submit,
        "result": cmd_result,
        "stats": cmd_stats,
        "shutdown": cmd_shutdown,
    }
    handler = commands.get(args.command)
    if handler is None:
        parser.print_help()
        return
    handler(args)


if __name__ == "__main__":
    main()
