"""User service - lookup and provisioning of identity-provider users."""

from sqlalchemy.orm import Session

from app.db.models import User


def get_user_by_email(db: Session, email: str) -> User | None:
    """Get user by email (case-insensitive)."""
    return db.query(User).filter(User.email == email.lower().strip()).first()


def get_or_create_user(db: Session, email: str, display_name: str | None = None) -> User:
    """
    Return the user for `email`, creating it if missing.

    Authentication lives with the identity provider; this only records the
    principal. Caller commits.
    """
    user = get_user_by_email(db, email)
    if user:
        return user
    email = email.lower().strip()
    user = User(email=email, display_name=display_name or email.split("@")[0])
    db.add(user)
    db.flush()
    return user
