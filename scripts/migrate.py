#!/usr/bin/env python3
"""BrandGuard database tool.

Schema changes go through Alembic (`infra/migrations`); `import-legacy` loads
a JSON dump of the browser-only app's localStorage into the database.

  python scripts/migrate.py upgrade
  python scripts/migrate.py downgrade -1
  python scripts/migrate.py revision "add report tags"
  python scripts/migrate.py import-legacy brandguard-export.json
"""

import sys
import json
import argparse
from pathlib import Path

from alembic import command
from alembic.config import Config

# Make the brandguard package importable
project_root = Path(__file__).parent.parent
sys.path.append(str(project_root / "api"))

ALEMBIC_INI = project_root / "infra" / "migrations" / "alembic.ini"


def _config() -> Config:
    # env.py reads DATABASE_URL through brandguard settings
    return Config(str(ALEMBIC_INI))


def upgrade(args) -> int:
    command.upgrade(_config(), args.revision)
    return 0


def downgrade(args) -> int:
    command.downgrade(_config(), args.revision)
    return 0


def current(args) -> int:
    command.current(_config(), verbose=args.verbose)
    return 0


def history(args) -> int:
    command.history(_config(), verbose=args.verbose)
    return 0


def revision(args) -> int:
    command.revision(_config(), message=args.message, autogenerate=not args.empty)
    return 0


def import_legacy(args) -> int:
    from brandguard.services.db import db_session
    from brandguard.services.repository import import_legacy_export

    path = Path(args.export_file)
    try:
        payload = json.loads(path.read_text(encoding="utf-8"))
    except FileNotFoundError:
        print(f"ERROR: {path} not found")
        return 1
    except json.JSONDecodeError as e:
        print(f"ERROR: {path} is not valid JSON: {e}")
        return 1
    if not isinstance(payload, dict):
        print("ERROR: export must be a JSON object of storage keys")
        return 1

    with db_session() as session:
        counts = import_legacy_export(session, payload)
    print(
        f"✓ Imported {counts['workspaces']} workspaces, {counts['rules']} rules, "
        f"{counts['reports']} reports, {counts['certificates']} certificates"
    )
    for workspace_id in counts["skipped_workspaces"]:
        print(f"⚠ Skipped workspace {workspace_id}: already exists")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description=__doc__, formatter_class=argparse.RawDescriptionHelpFormatter
    )
    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("upgrade", help="Upgrade the schema")
    p.add_argument("revision", nargs="?", default="head")
    p.set_defaults(func=upgrade)

    p = sub.add_parser("downgrade", help="Downgrade the schema")
    p.add_argument("revision", help="Target revision, e.g. -1 or base")
    p.set_defaults(func=downgrade)

    for name, func in (("current", current), ("history", history)):
        p = sub.add_parser(name, help=f"Show {name} revision info")
        p.add_argument("-v", "--verbose", action="store_true")
        p.set_defaults(func=func)

    p = sub.add_parser("revision", help="Create a migration from model changes")
    p.add_argument("message")
    p.add_argument("--empty", action="store_true", help="Skip autogenerate")
    p.set_defaults(func=revision)

    p = sub.add_parser("import-legacy", help="Import a browser localStorage export")
    p.add_argument("export_file", help="JSON file mapping storage keys to values")
    p.set_defaults(func=import_legacy)
    return parser


def main() -> int:
    args = build_parser().parse_args()
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
