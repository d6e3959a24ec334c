"""Command-line interface for the userbook service."""

from __future__ import annotations
import argparse
import logging
import os
import sys
from pathlib import Path
from typing import Sequence


def _running_in_virtualenv() -> bool:
    """Return ``True`` when the current interpreter is executing inside a venv."""

    base_prefix = getattr(sys, "base_prefix", sys.prefix)
    return sys.prefix != base_prefix


def _bootstrap_virtualenv() -> None:
    """Re-exec the script using the bundled virtualenv interpreter when available."""

    if _running_in_virtualenv():
        return

    root = Path(__file__).resolve().parent
    venv_dir = root / ".venv"
    if not venv_dir.is_dir():
        return

    candidates = (
        venv_dir / "bin" / "python",
        venv_dir / "bin" / "python3",
        venv_dir / "Scripts" / "python.exe",
        venv_dir / "Scripts" / "python",
    )

    script = str(Path(__file__).resolve())
    for candidate in candidates:
        if candidate.exists():
            os.execv(str(candidate), [str(candidate), script, *sys.argv[1:]])


if __name__ == "__main__":
    _bootstrap_virtualenv()

from userbook.config import Settings, load_settings
from userbook.database import Database, StoreError
from userbook.models import UserInput
from userbook.service import DuplicateEmailError, UserService

logger = logging.getLogger("userbook.main")


def _parse_args(argv: Sequence[str] | None) -> argparse.Namespace:
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument(
        "--config",
        default=None,
        help="Path to a YAML settings file (default: USERBOOK_CONFIG or config/userbook.yaml)",
    )

    parser = argparse.ArgumentParser(description="Userbook record service utilities")
    subparsers = parser.add_subparsers(dest="command")

    parser.set_defaults(command="serve", config=None)

    subparsers.add_parser("init-db", parents=[common], help="Initialise the user database")

    serve_parser = subparsers.add_parser("serve", parents=[common], help="Start the HTTP service")
    serve_parser.add_argument("--host", default=None, help="Bind address (default from settings: 0.0.0.0)")
    serve_parser.add_argument(
        "--port",
        type=int,
        default=None,
        help="Port for the HTTP service (default from settings: 3000)",
    )

    subparsers.add_parser(
        "admin", parents=[common], help="Launch the interactive administration console"
    )

    args_list = list(argv) if argv is not None else sys.argv[1:]
    known_commands = {"serve", "admin", "init-db"}

    if not args_list:
        args_list = ["serve"]
    else:
        first = args_list[0]
        if first in ("-h", "--help"):
            return parser.parse_args(args_list)
        if first not in known_commands:
            if any(flag in args_list for flag in ("-h", "--help")):
                return parser.parse_args(args_list)
            args_list = ["serve", *args_list]

    return parser.parse_args(args_list)


def _initialise_database(settings: Settings) -> Database:
    database = Database(settings.database_path)
    database.initialize()
    logger.info("Database initialised at %s", settings.database_path)
    return database


def _serve(*, settings: Settings, database: Database, host: str | None, port: int | None) -> None:
    from userbook.application import create_application
    import uvicorn

    bind_host = host or settings.host
    bind_port = port or settings.port
    logger.info("Starting userbook on http://%s:%s", bind_host, bind_port)

    app = create_application(settings=settings, database=database)
    uvicorn.run(
        app,
        host=bind_host,
        port=bind_port,
        log_level=settings.log_level.lower(),
    )


def _run_admin_cli(service: UserService) -> None:
    """Provide an interactive console for managing user records."""

    print("Userbook Administration Console")
    print("Press Ctrl+C at any time to exit.\n")

    try:
        while True:
            print("Select an option:")
            print("  1) List all users")
            print("  2) Add a new user")
            print("  3) Delete a user")
            print("  4) Exit")

            choice = input("Enter choice [1-4]: ").strip()

            try:
                if choice == "1":
                    _list_users(service)
                elif choice == "2":
                    _add_user(service)
                elif choice == "3":
                    _delete_user(service)
                elif choice == "4":
                    print("Goodbye!")
                    return
                else:
                    print("Invalid selection. Please choose a number from the menu.\n")
            except StoreError as exc:
                logger.debug("Admin action failed", exc_info=True)
                print(f"Storage error: {exc}")

            print()
    except KeyboardInterrupt:
        print("\nExiting administration console.")


def _list_users(service: UserService) -> None:
    users = service.list_users()
    if not users:
        print("No users are currently registered.")
        return

    print(f"{len(users)} user(s) found:")
    print(f"{'ID':>4}  {'Name':<24}  {'Email':<32}  Created")
    print("-" * 80)
    for user in users:
        created = user.created_at.strftime("%Y-%m-%d %H:%M:%S %Z")
        print(f"{user.id:>4}  {user.name:<24}  {user.email:<32}  {created}")


def _add_user(service: UserService) -> None:
    print("\nCreate a new user (leave the name blank to cancel).")
    name = input("Name: ").strip()
    if not name:
        print("User creation cancelled.")
        return

    email = input("Email address: ").strip()
    if not email:
        print("An email address is required. User creation cancelled.")
        return

    try:
        user = service.create_user(UserInput(name=name, email=email))
    except DuplicateEmailError:
        print(f"Failed to create user: {email} is already registered.")
        return

    print(f"Created user #{user.id}: {user.name} <{user.email}>")


def _delete_user(service: UserService) -> None:
    raw_id = input("User ID to delete: ").strip()
    try:
        user_id = int(raw_id)
    except ValueError:
        print(f"'{raw_id}' is not a valid user ID.")
        return

    if service.delete_user(user_id):
        print(f"Deleted user #{user_id}.")
    else:
        print(f"User #{user_id} not found.")


def main(argv: Sequence[str] | None = None) -> int:
    """Entry point for CLI usage."""

    args = _parse_args(argv)
    settings = load_settings(Path(args.config) if args.config else None)

    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )

    try:
        database = _initialise_database(settings)
    except StoreError as exc:
        logger.error("Failed to initialise database: %s", exc)
        return 1

    if args.command == "serve":
        _serve(settings=settings, database=database, host=args.host, port=args.port)
    elif args.command == "admin":
        _run_admin_cli(UserService(database))
    elif args.command == "init-db":
        print("Database initialisation complete.")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
