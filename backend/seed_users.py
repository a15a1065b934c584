from __future__ import annotations

import argparse
import logging
import sys
from typing import List

from sqlalchemy.orm import Session

from auth import get_password_hash
from database import Base, SessionLocal, engine
from models import Department, User, UserRole

logging.basicConfig(level=logging.INFO, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s")
logger = logging.getLogger(__name__)

DEMO_PASSWORD = "guest123"
DEMO_USERS = (
    {"name": "Guest Student", "email": "guest.student@demo.com", "role": UserRole.STUDENT, "department": Department.CS},
    {"name": "Guest Professor", "email": "guest.professor@demo.com", "role": UserRole.PROFESSOR, "department": Department.CS},
    {"name": "Guest HOD", "email": "guest.hod@demo.com", "role": UserRole.HOD, "department": Department.CS},
    {"name": "Guest Director", "email": "guest.director@demo.com", "role": UserRole.DIRECTOR, "department": None},
)


def seed_demo_users(db: Session, password: str = DEMO_PASSWORD) -> List[str]:
    """Create any missing demo account; returns the emails that were created."""
    created = []
    for entry in DEMO_USERS:
        if db.query(User).filter(User.email == entry["email"]).first():
            logger.info("Demo user already exists: %s", entry["email"])
            continue
        db.add(User(
            name=entry["name"],
            email=entry["email"],
            hashed_password=get_password_hash(password),
            role=entry["role"],
            department=entry["department"],
        ))
        created.append(entry["email"])
        logger.info("Created demo user: %s", entry["email"])
    db.commit()
    return created


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Create the demo student, professor, HOD and director accounts.")
    parser.add_argument(
        "--password",
        default=DEMO_PASSWORD,
        help="Password assigned to newly created demo accounts.",
    )
    return parser.parse_args()


def main() -> int:
    args = parse_args()
    if len(args.password) < 6:
        logger.error("Password must be at least 6 characters.")
        return 1

    Base.metadata.create_all(bind=engine)
    db = SessionLocal()
    try:
        created = seed_demo_users(db, args.password)
    finally:
        db.close()
    logger.info("Demo user seeding complete (%d created).", len(created))
    return 0


if __name__ == "__main__":
    sys.exit(main())
