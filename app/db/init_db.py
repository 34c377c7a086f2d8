"""
Database initialization and seeding.
"""
from sqlalchemy.orm import Session

from app.core.security import create_access_token, get_password_hash
from app.models.user import User


def init_db(db: Session) -> str:
    """
    Initialize database with a default user.

    Args:
        db: Database session

    Returns:
        An access token for the default user, for local testing
    """
    admin = db.query(User).filter(User.email == "admin@example.com").first()
    if not admin:
        admin = User(
            email="admin@example.com",
            full_name="System Administrator",
            hashed_password=get_password_hash("admin123"),
            is_active=True,
        )
        db.add(admin)
        db.commit()
        db.refresh(admin)
        print("Admin user created successfully")

    return create_access_token(str(admin.id))
