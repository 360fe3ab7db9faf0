"""Run or create Alembic migrations."""

import sys

from alembic import command
from alembic.config import Config

USAGE = "Usage: python scripts/migrate.py [upgrade [rev] | downgrade <rev> | create <message>]"


def _config() -> Config:
    return Config("alembic.ini")


def upgrade(revision: str = "head") -> None:
    print(f"Upgrading database to {revision}...")
    command.upgrade(_config(), revision)
    print("✓ Migrations completed")


def downgrade(revision: str) -> None:
    print(f"Downgrading database to {revision}...")
    command.downgrade(_config(), revision)
    print("✓ Downgrade completed")


def create_migration(message: str) -> None:
    print(f"Creating migration: {message}")
    command.revision(_config(), message=message, autogenerate=True)
    print("✓ Migration created")


def main(argv: list[str]) -> int:
    action, args = (argv[0], argv[1:]) if argv else ("upgrade", [])

    try:
        if action == "upgrade":
            upgrade(args[0] if args else "head")
        elif action == "downgrade" and args:
            downgrade(args[0])
        elif action == "create" and args:
            create_migration(" ".join(args))
        else:
            print(USAGE)
            return 2
    except Exception as e:
        print(f"✗ Migration failed: {e}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main(sys.argv[1:]))
