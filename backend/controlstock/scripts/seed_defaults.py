"""
Seed default warehouses, medicines and one user per role into an empty database.

Usage:
    python -m controlstock.scripts.seed_defaults
    python -m controlstock.scripts.seed_defaults --reconcile
"""
import argparse
import logging
import sys

from controlstock.config import settings
from controlstock.database import SessionLocal, init_db
from controlstock.exceptions import ControlStockError
from controlstock.services.inventory_service import InventoryService
from controlstock.services.seed_service import seed_defaults

logger = logging.getLogger(__name__)


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Seed ControlStock default data")
    parser.add_argument(
        "--reconcile",
        action="store_true",
        help="Also report medicines whose stock differs from the movements ledger",
    )
    args = parser.parse_args(argv)

    logging.basicConfig(level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO))
    init_db()
    db = SessionLocal()
    try:
        added = seed_defaults(db)
        print(f"Added {added['users']} users, {added['warehouses']} warehouses, {added['medicines']} medicines")
        if args.reconcile:
            drifted = [r for r in InventoryService.reconcile_all(db) if not r["in_sync"]]
            for r in drifted:
                print(f"  {r['medicine_name']}: drift {r['drift']}")
            print(f"{len(drifted)} medicine(s) out of sync with the ledger")
    except ControlStockError as e:
        logger.error("Seeding failed: %s", e.message)
        return 1
    finally:
        db.close()
    return 0


if __name__ == "__main__":
    sys.exit(main())
