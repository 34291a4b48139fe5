"""Command line entry point.

Usage:
  pingpong [run] [--context {thread,process}] [--host H] [--port P]
  pingpong initiate [--bind-host H] [--port P]
  pingpong respond [--host H] [--port P]

Any failure prints "Fatal error: <reason>" and exits with status 1.
"""

import argparse
import sys
from typing import Optional

from pingpong.config import BACKLOG, BIND_HOST, DIAL_DELAY, HOST, PORT, WORK_DELAY, ExchangeConfig
from pingpong.endpoint import ListeningEndpoint
from pingpong.errors import PingPongError
from pingpong.orchestrator import CONTEXTS, Orchestrator
from pingpong.roles import Initiator, Responder

COMMANDS = ("run", "initiate", "respond")


def _config(args: argparse.Namespace) -> ExchangeConfig:
    return ExchangeConfig(
        host=args.host,
        bind_host=args.bind_host,
        port=args.port,
        work_delay=args.work_delay,
        dial_delay=args.dial_delay,
    )


def cmd_run(args: argparse.Namespace) -> int:
    print("=== TCP Ping-Pong ===", flush=True)
    Orchestrator(_config(args), context=args.context).run()
    print("\n=== Done ===", flush=True)
    return 0


def cmd_initiate(args: argparse.Namespace) -> int:
    config = _config(args)
    with ListeningEndpoint(config.bind_host, config.port, BACKLOG) as endpoint:
        print(f"Listening on {config.bind_host}:{endpoint.port}", flush=True)
        with endpoint.accept() as conn:
            Initiator(conn, config).run()
    return 0


def cmd_respond(args: argparse.Namespace) -> int:
    Responder.dial(_config(args)).run()
    return 0


def _add_common(p: argparse.ArgumentParser) -> None:
    p.add_argument("--host", default=HOST, help=f"address the responder dials (default: {HOST})")
    p.add_argument(
        "--bind-host", default=BIND_HOST, help=f"address the endpoint binds (default: {BIND_HOST})"
    )
    p.add_argument("--port", type=int, default=PORT, help=f"TCP port (default: {PORT})")
    p.add_argument(
        "--work-delay",
        type=float,
        default=WORK_DELAY,
        help=f"seconds of simulated work per round (default: {WORK_DELAY})",
    )
    p.add_argument(
        "--dial-delay",
        type=float,
        default=DIAL_DELAY,
        help=f"seconds the responder waits before dialing (default: {DIAL_DELAY})",
    )


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="pingpong", description="Turn-taking between two peers over one TCP connection"
    )
    sub = p.add_subparsers(dest="cmd", required=True)

    p_run = sub.add_parser("run", help="run both sides (default)")
    _add_common(p_run)
    p_run.add_argument(
        "--context",
        choices=CONTEXTS,
        default="thread",
        help="where the responder runs (default: thread)",
    )
    p_run.set_defaults(func=cmd_run)

    p_initiate = sub.add_parser("initiate", help="listen, accept one peer, and send triggers")
    _add_common(p_initiate)
    p_initiate.set_defaults(func=cmd_initiate)

    p_respond = sub.add_parser("respond", help="dial the initiator and acknowledge triggers")
    _add_common(p_respond)
    p_respond.set_defaults(func=cmd_respond)

    return p


def main(argv: Optional[list[str]] = None) -> int:
    argv = sys.argv[1:] if argv is None else list(argv)
    if not argv or (argv[0] not in COMMANDS and argv[0] not in ("-h", "--help")):
        argv = ["run", *argv]

    parser = build_parser()
    args = parser.parse_args(argv)
    try:
        return int(args.func(args))
    except PingPongError as e:
        print(f"Fatal error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
