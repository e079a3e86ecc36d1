#!/usr/bin/env python3
"""
Admin User Seed Script
Creates an admin user for the Follow-Up Unit admin panel.

Usage:
    python -m scripts.seed_admin <username> <password> [email]

Example:
    python -m scripts.seed_admin admin SecurePass1! admin@example.com
"""
import sys
import os
from typing import Optional
from uuid import uuid4

# Add the parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from sqlalchemy.orm import Session
from app.database import SessionLocal, init_db
from app.models.db_models import UserDB
from app.auth import ROLE_ADMIN, hash_password


def create_admin_user(username: str, password: str, email: Optional[str] = None, db: Optional[Session] = None) -> bool:
    """Create an admin user, or upgrade an existing one to admin."""
    owns_session = db is None
    if owns_session:
        # Ensure tables exist
        init_db()
        db = SessionLocal()

    try:
        existing = db.query(UserDB).filter(UserDB.username == username).first()

        if existing:
            if existing.role == ROLE_ADMIN:
                print(f"User '{username}' is already an admin.")
                return False
            existing.role = ROLE_ADMIN
            db.commit()
            print(f"Upgraded existing user '{username}' to admin role.")
            return True

        if email and db.query(UserDB).filter(UserDB.email == email.lower()).first():
            print(f"Error: Email '{email}' already exists.")
            return False

        admin_user = UserDB(
            id=str(uuid4()),
            username=username,
            email=email.lower() if email else None,
            password_hash=hash_password(password),
            role=ROLE_ADMIN
        )

        db.add(admin_user)
        db.commit()

        print("Admin user created successfully!")
        print(f"  Username: {username}")
        if email:
            print(f"  Email: {email}")
        print("  Role: admin")
        return True

    except Exception as e:
        print(f"Error creating admin user: {e}")
        db.rollback()
        return False
    finally:
        if owns_session:
            db.close()


def main():
    if len(sys.argv) not in (3, 4):
        print(__doc__)
        sys.exit(1)

    username = sys.argv[1]
    password = sys.argv[2]
    email = sys.argv[3] if len(sys.argv) == 4 else None

    # Basic validation
    if len(username) < 3:
        print("Error: Username must be at least 3 characters.")
        sys.exit(1)

    if len(password) < 8:
        print("Error: Password must be at least 8 characters.")
        sys.exit(1)

    if email is not None and "@" not in email:
        print("Error: Invalid email format.")
        sys.exit(1)

    success = create_admin_user(username, password, email)
    sys.exit(0 if success else 1)


if __name__ == "__main__":
    main()
