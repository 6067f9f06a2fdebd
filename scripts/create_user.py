#!/usr/bin/env python3
from __future__ import annotations

from getpass import getpass

from dotenv import load_dotenv

from myboard.errors import BoardError
from myboard.infra.mongo import connect, get_database
from myboard.infra.user_repo import UserRepository
from myboard.services.account_service import signup


def main(database=None) -> None:
    load_dotenv()
    client = None
    if database is None:
        client = connect()
        database = get_database(client)
    try:
        users = UserRepository(database)
        users.ensure_indexes()

        username = input("Username: ").strip()
        pw1 = getpass("Password: ")
        pw2 = getpass("Repeat password: ")
        if pw1 != pw2:
            raise SystemExit("Passwords do not match")

        try:
            u = signup(users, username, pw1)
        except BoardError as e:
            raise SystemExit(e.public_message)
        print(f"OK -> {u.username}")
    finally:
        if client is not None:
            client.close()


if __name__ == "__main__":
    main()
