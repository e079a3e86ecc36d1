#!/usr/bin/env python3
"""
Orphaned Report Cleanup Script
Deletes weekly reports whose person no longer exists.

Statistics flag these as "orphaned reports"; this is the maintenance action
that clears the warning.

Usage:
    python -m scripts.cleanup_orphaned_reports [--dry-run]
"""
import logging
import sys
import os
from typing import Optional

# Add the parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from sqlalchemy.orm import Session
from app.database import SessionLocal
from app.logging_config import configure_logging
from app.services.hard_delete_service import HardDeleteService

logger = logging.getLogger("scripts.cleanup_orphaned_reports")


def cleanup_orphaned_reports(dry_run: bool = False, db: Optional[Session] = None) -> dict:
    """Find and (unless dry_run) delete orphaned reports. Returns the summary counts."""
    owns_session = db is None
    if owns_session:
        db = SessionLocal()

    try:
        summary = HardDeleteService(db).delete_orphaned_reports(dry_run=dry_run)
    except Exception:
        db.rollback()
        raise
    finally:
        if owns_session:
            db.close()

    logger.info(f"Found {summary['valid_persons']} valid persons")
    logger.info(f"Found {summary['orphaned_reports']} orphaned reports")
    if summary["orphaned_reports"] == 0:
        logger.info("No orphaned reports found. Database is clean!")
    elif dry_run:
        logger.info("Dry run: nothing deleted")
    else:
        logger.info(f"Deleted {summary['deleted_reports']} orphaned reports")
    return summary


def main():
    args = sys.argv[1:]
    if any(arg not in ("--dry-run",) for arg in args):
        print(__doc__)
        sys.exit(1)

    configure_logging()
    try:
        cleanup_orphaned_reports(dry_run="--dry-run" in args)
    except Exception as e:
        logger.error(f"Error cleaning up orphaned reports: {e}")
        sys.exit(1)
    sys.exit(0)


if __name__ == "__main__":
    main()
