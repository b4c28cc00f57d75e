# src/peerhub/scripts/community_reset.py
"""
Maintenance command for the community data lifecycle.

By default it performs a community reset: all posts and groups are deleted
and the seed groups recreated in one transaction. Run without ``--admin-id``
only from trusted tooling such as a scheduled job; the first active admin
then becomes the creator of the seed groups.
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from collections.abc import Callable, Sequence

from sqlalchemy.orm import Session

from peerhub.core.errors import PermissionDenied, StoreError
from peerhub.core.settings import settings
from peerhub.db.session import SessionLocal
from peerhub.services.factory import build_coordinator

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="peerhub-reset",
        description="Reset community posts and groups, or inspect their state.",
    )
    parser.add_argument(
        "--admin-id",
        default=None,
        help="Account id of the admin performing the reset (permission is checked).",
    )
    mode = parser.add_mutually_exclusive_group()
    mode.add_argument(
        "--status",
        action="store_true",
        help="Print current row counts and exit without changing data.",
    )
    mode.add_argument(
        "--validate",
        action="store_true",
        help="Run the integrity scan and exit without changing data.",
    )
    return parser


def main(
    argv: Sequence[str] | None = None,
    session_factory: Callable[[], Session] = SessionLocal,
) -> int:
    """Run the command and return the process exit code."""
    args = build_parser().parse_args(argv)
    logging.basicConfig(level=settings.log_level.upper())

    db = session_factory()
    try:
        coordinator = build_coordinator(db)
        if args.status:
            print(coordinator.get_cleanup_status().model_dump_json(indent=2))
            return 0
        if args.validate:
            report = coordinator.validate_integrity()
            print(report.model_dump_json(indent=2))
            return 0 if report.is_valid else 1

        try:
            result = coordinator.perform_community_reset(args.admin_id)
        except PermissionDenied as exc:
            print(json.dumps({"error": str(exc)}, ensure_ascii=False), file=sys.stderr)
            return 2
        except StoreError as exc:
            print(json.dumps({"error": str(exc)}, ensure_ascii=False), file=sys.stderr)
            return 1
        print(result.model_dump_json(indent=2))
        return 0 if result.integrity_check_passed else 1
    finally:
        db.close()


if __name__ == "__main__":
    sys.exit(main())
