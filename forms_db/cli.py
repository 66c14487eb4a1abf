"""
forms-db: administer a forms catalog from the shell.

Configuration comes from the FORMS_DB_* environment variables (see
forms_db.config). Examples:

    forms-db init
    forms-db add forms/survey.xml --form-id household --version 3
    forms-db --json latest
    forms-db update 4 language=fr auto_send=true
    forms-db rm 4
    forms-db check
"""

from __future__ import annotations

import argparse
import json
import os
import sys
from dataclasses import asdict
from typing import List, Optional

from .core import FormsDB
from .errors import FormsDBError, InvalidInput
from .registry import Filter, FormRecord

_LIST_FIELDS = ("id", "form_id", "version", "display_name", "form_file_path", "md5_hash")


def _print_records(records: List[FormRecord], as_json: bool) -> None:
    if as_json:
        print(json.dumps([asdict(r) for r in records], indent=2))
        return
    for record in records:
        print("\t".join("" if getattr(record, f) is None else str(getattr(record, f)) for f in _LIST_FIELDS))


def _parse_assignments(items: List[str]) -> dict:
    patch = {}
    for item in items:
        key, sep, value = item.partition("=")
        if not sep or not key:
            raise InvalidInput(f"Expected key=value, got {item!r}")
        patch[key.strip()] = value if value != "" else None
    return patch


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="forms-db", description=__doc__.splitlines()[1])
    parser.add_argument("--json", action="store_true", help="print records as JSON")
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("init", help="create the database schema and storage roots")

    add = sub.add_parser("add", help="register a form definition file")
    add.add_argument("path")
    add.add_argument("--form-id")
    add.add_argument("--version")
    add.add_argument("--name", help="display name (defaults to the file name)")

    ls = sub.add_parser("list", help="list forms, newest first")
    ls.add_argument("--all", action="store_true", help="include soft-deleted forms")
    ls.add_argument("--form-id")

    sub.add_parser("latest", help="newest form per form id")

    show = sub.add_parser("show", help="show one form")
    show.add_argument("id", type=int)

    update = sub.add_parser("update", help="patch one form")
    update.add_argument("id", type=int)
    update.add_argument("assignments", nargs="+", metavar="key=value")

    rm = sub.add_parser("rm", help="delete a form and its files")
    rm.add_argument("id", type=int)
    rm.add_argument("--soft", action="store_true", help="mark deleted, keep row and files")

    sub.add_parser("check", help="list forms whose definition file is missing")

    return parser


def run(args: argparse.Namespace, db: FormsDB) -> int:
    registry = db.registry

    if args.command == "init":
        print(f"forms catalog ready: {db.backend!r}")
        return 0

    if args.command == "add":
        values = {"form_file_path": os.path.abspath(args.path)}
        if args.form_id:
            values["form_id"] = args.form_id
        if args.version:
            values["version"] = args.version
        if args.name:
            values["display_name"] = args.name
        form_pk = registry.insert(values)
        _print_records([registry.get(form_pk)], args.json)
        return 0

    if args.command == "list":
        if args.form_id and not args.all:
            records = registry.find_by_form_id(args.form_id)
        else:
            flt = Filter.where(jr_form_id=args.form_id) if args.form_id else Filter()
            if args.all:
                flt = flt.with_deleted()
            records = registry.scan(flt, "date DESC, _id DESC")
        _print_records(records, args.json)
        return 0

    if args.command == "latest":
        _print_records(registry.latest_by_form_id(), args.json)
        return 0

    if args.command == "show":
        record = registry.get(args.id, include_deleted=True)
        print(json.dumps(asdict(record), indent=2))
        return 0

    if args.command == "update":
        registry.update_by_id(args.id, _parse_assignments(args.assignments))
        _print_records([registry.get(args.id)], args.json)
        return 0

    if args.command == "rm":
        if args.soft:
            registry.soft_delete(args.id)
        else:
            registry.delete_by_id(args.id)
        print(f"deleted {args.id}")
        return 0

    if args.command == "check":
        missing = registry.missing_artifacts()
        _print_records(missing, args.json)
        return 1 if missing else 0

    raise InvalidInput(f"Unknown command: {args.command}")


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    db = FormsDB.from_env()
    try:
        return run(args, db)
    except FormsDBError as e:
        print(f"forms-db: {e}", file=sys.stderr)
        return 1
    finally:
        db.close()


if __name__ == "__main__":
    sys.exit(main())
