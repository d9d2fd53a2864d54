import argparse
import getpass
import os
import sys
from pathlib import Path

import anyio

ROOT = Path(__file__).resolve().parent.parent
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from portal.api import PortalAPI
from portal.models import Role
from portal.store import SQLiteStore, resolve_database_path


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Create a mentor portal user")
    parser.add_argument("name", help="Display name for the user")
    parser.add_argument("email", help="Unique email address for login")
    parser.add_argument(
        "--role",
        choices=[role.value for role in Role],
        default=Role.STUDENT.value,
        help="Portal role for the account (default: student)",
    )
    parser.add_argument(
        "--db",
        dest="db_path",
        default=None,
        help="Path to the SQLite record store (defaults to PORTAL_DB_PATH or data/portal.sqlite3)",
    )
    return parser.parse_args()


def prompt_for_password() -> str:
    for _ in range(3):
        password = getpass.getpass("Password: ")
        confirm = getpass.getpass("Confirm password: ")
        if password != confirm:
            print("Passwords do not match. Try again.", file=sys.stderr)
            continue
        if not password:
            print("Password must not be empty.", file=sys.stderr)
            continue
        return password
    raise SystemExit("Failed to set password after three attempts.")


def main() -> int:
    args = parse_args()
    password = prompt_for_password()

    db_env = args.db_path or os.getenv("PORTAL_DB_PATH")
    store = SQLiteStore(resolve_database_path(db_env))
    store.initialize()
    api = PortalAPI(store, latency_scale=0)

    try:
        result = anyio.run(api.create_user, args.name, args.email, Role(args.role), password)
    except ValueError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1

    if not result.success or result.data is None:
        print(f"Error: {result.message}", file=sys.stderr)
        return 1

    user = result.data
    print(f"Created {user.role.value} #{user.id}: {user.name} <{user.email}>")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
