"""Create a CollabHub user, optionally with admin status.

Usage:
    python -m collabhub.scripts.create_user --email admin@example.com --password <password> [--admin]
"""

from __future__ import annotations

import argparse
import sys

from pydantic import ValidationError

from collabhub.db.session import SessionLocal
from collabhub.errors import UserInputError
from collabhub.db.transaction import unit_of_work
from collabhub.roles import GlobalStatus
from collabhub.schemas.auth import RegisterInput
from collabhub.services.auth import AuthService
from collabhub.services.tokens import TokenManager


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(description="Create a CollabHub user")
    parser.add_argument("--email", required=True, help="Email for the new user")
    parser.add_argument("--password", required=True, help="Password for the new user")
    parser.add_argument("--admin", action="store_true", help="Grant ADMIN global status")
    args = parser.parse_args(argv)

    db = SessionLocal()
    try:
        auth = AuthService(db, TokenManager())
        try:
            data = RegisterInput(email=args.email, password=args.password)
        except ValidationError as exc:
            error = exc.errors()[0]
            field = ".".join(str(part) for part in error["loc"])
            print(f"Invalid {field}: {error['msg']}.")
            sys.exit(1)
        try:
            user = auth.register(data)
        except UserInputError as exc:
            print(f"{exc.message}: '{args.email}'.")
            sys.exit(1)
        if args.admin:
            with unit_of_work(db):
                user.global_status = GlobalStatus.ADMIN
        print(f"User '{user.email}' created successfully (id={user.id}, status={user.global_status.value}).")
    finally:
        db.close()


if __name__ == "__main__":
    main()
