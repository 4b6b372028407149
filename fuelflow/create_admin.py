"""One-time script to create (or reset) an admin user.

Usage:
    python -m fuelflow.create_admin
"""

from __future__ import annotations

import getpass

from sqlalchemy import func

from fuelflow.app.core.database import Base, SessionLocal, engine
from fuelflow.app.core.security import get_password_hash, validate_password_strength

# Import all models so SQLAlchemy resolves relationships
import fuelflow.app.models.accounting  # noqa: F401

from fuelflow.app.models.user import RoleEnum, User


def main() -> None:
    username = input("Username [admin]: ").strip() or "admin"
    password = getpass.getpass("Password: ")
    if not password:
        print("Error: password cannot be empty.")
        return
    pw_error = validate_password_strength(password)
    if pw_error:
        print(f"Error: {pw_error}")
        return

    Base.metadata.create_all(bind=engine)
    db = SessionLocal()
    try:
        existing = db.query(User).filter(
            func.lower(User.username) == username.lower()
        ).first()
        if existing:
            # Reset password, unlock, activate, promote
            existing.hashed_password = get_password_hash(password)
            existing.is_active = True
            existing.failed_login_attempts = 0
            existing.locked_until = None
            existing.role = RoleEnum.ADMIN
            db.commit()
            print("Admin user already exists, password reset.")
            print(f"  ID:       {existing.id}")
            print(f"  Username: {username}")
            return

        user = User(
            username=username,
            hashed_password=get_password_hash(password),
            role=RoleEnum.ADMIN,
            is_active=True,
        )
        db.add(user)
        db.commit()
        db.refresh(user)

        print("Admin user created.")
        print(f"  ID:       {user.id}")
        print(f"  Username: {username}")
        print("  Role:     admin")
    finally:
        db.close()


if __name__ == "__main__":
    main()
