"""CLI for the companion client.

Entry point: task-bridge [--data PATH] <subcommand> [args...]

The agent's hooks run ``task-bridge send``; ``install-hooks`` writes those
hooks into the agent's settings file.
"""

import argparse
import json
import os
import sys
from pathlib import Path


def _read_hook_message(stream) -> str | None:
    """The "message" field of the hook's JSON payload on stdin, if any."""
    try:
        payload = json.loads(stream.read() or "{}")
    except (json.JSONDecodeError, OSError, ValueError):
        return None
    if isinstance(payload, dict) and isinstance(payload.get("message"), str):
        return payload["message"]
    return None


# --- Subcommands ---


def cmd_send(args) -> int:
    """Queue a notice for the host process."""
    from . import config
    from .notifications import write_notice

    cfg = config.get_bridge_config()
    message = args.message
    if args.hook_input:
        message = _read_hook_message(sys.stdin) or message
    session = args.session if args.session is not None else os.environ.get(cfg["session_env_var"])

    path = write_notice(
        message or "",
        session or None,
        args.event,
        dedupe_seconds=float(cfg["dedupe_seconds"]),
    )
    if path is None and args.verbose:
        print("Duplicate notice suppressed.")
    elif args.verbose:
        print(f"Wrote {path}")
    return 0


def cmd_install_hooks(args) -> int:
    """Install hook commands into the agent settings file."""
    from . import config
    from .errors import MissingDependencyError
    from .hook_config import install_hooks

    cfg = config.get_bridge_config()
    settings = Path(args.settings).expanduser() if args.settings else config.settings_path()
    try:
        merged = install_hooks(
            settings,
            client=cfg["client_executable"],
            env_var=cfg["session_env_var"],
            events=cfg["hook_events"],
        )
    except MissingDependencyError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    print(f"Wrote {settings}")
    for event in merged["hooks"]:
        print(f"  {event}")
    return 0


def main(argv: list[str] | None = None) -> None:
    from . import config
    from .logging_config import setup_process_logging

    parser = argparse.ArgumentParser(
        prog="task-bridge",
        description="Queue agent task notifications for the editor host",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--data", "-d", help="Data directory (default: $TASK_BRIDGE_DIR or ~/.local/share/task-bridge)")
    parser.add_argument("--verbose", "-v", action="store_true", help="Print what was done")
    subparsers = parser.add_subparsers(dest="command", required=True)

    send_parser = subparsers.add_parser("send", help="Queue a notification (run by the agent's hooks)")
    send_parser.add_argument("message", nargs="?", default="", help="Notification text")
    send_parser.add_argument("--session", "-s", default=None, help="Session label (default: from the configured env var)")
    send_parser.add_argument("--event", "-e", default=None, help="Hook event name, e.g. Stop")
    send_parser.add_argument(
        "--hook-input", action="store_true", help="Read the hook's JSON payload from stdin and use its message"
    )
    send_parser.set_defaults(func=cmd_send)

    install_parser = subparsers.add_parser("install-hooks", help="Write hook commands into the agent settings file")
    install_parser.add_argument("--settings", help="Settings file (default: from bridge config)")
    install_parser.set_defaults(func=cmd_install_hooks)

    args = parser.parse_args(argv)

    data = Path(args.data).expanduser().resolve() if args.data else config.default_data_dir()
    config.init(data)
    config.ensure_dirs()
    # Hooks run headless; keep stderr quiet unless asked
    setup_process_logging("client", console=args.verbose)

    exit_code = args.func(args)
    if exit_code:
        raise SystemExit(exit_code)


if __name__ == "__main__":
    main()
