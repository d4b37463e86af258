"""Create the database schema and seed the workout catalog."""
from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from mamafit.config import get_settings
from mamafit.database import SessionLocal, is_database_configured, run_migrations
from mamafit.logging_config import configure_logging
from mamafit.models.database_models import Workout
from mamafit.services.catalog import load_static_catalog


logger = logging.getLogger("scripts.initial_setup")


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Initialise the check-in database")
    parser.add_argument(
        "--skip-seed",
        action="store_true",
        help="Apply migrations only; do not insert the embedded workout catalog",
    )
    return parser.parse_args()


def seed_workouts(db: Session, catalog_path: Path) -> int:
    """Insert the embedded catalog when the workouts table is empty.

    Returns:
        Number of workouts inserted (0 if the table already had rows).
    """
    existing = db.execute(select(func.count()).select_from(Workout)).scalar_one()
    if existing:
        logger.info("Workouts table already has %d row(s); skipping seed", existing)
        return 0

    workouts = load_static_catalog(catalog_path)
    for workout in workouts:
        row = workout.model_dump()
        row["intensity_level"] = str(row["intensity_level"])
        db.add(Workout(**row))
    db.commit()
    logger.info("Seeded %d workouts from %s", len(workouts), catalog_path)
    return len(workouts)


def main() -> None:
    configure_logging()
    args = parse_args()
    settings = get_settings()

    if not is_database_configured():
        logger.error("DATABASE_URL is not configured; nothing to set up")
        sys.exit(1)

    Path("data").mkdir(exist_ok=True)
    run_migrations()
    logger.info("Database schema is up to date")

    if args.skip_seed:
        return

    db = SessionLocal()
    try:
        seed_workouts(db, settings.static_catalog_path)
    except Exception:
        db.rollback()
        logger.exception("Seeding workouts failed")
        raise
    finally:
        db.close()


if __name__ == "__main__":
    main()
