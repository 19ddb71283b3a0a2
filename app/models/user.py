"""ORM model for site user accounts (auth and RBAC)."""

from sqlalchemy import CheckConstraint, Column, Index, Integer, String, func

from app.models.base import Base

USER_ROLES = ("user", "admin")


class User(Base):
    """
    Account for cookie-based JWT authentication and role-based access control.

    mobile_number is unique; email is unique ignoring case (index on lower(email)).
    role is 'admin' or 'user'.
    """

    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(255), nullable=False, default="")
    mobile_number = Column(String(10), nullable=False, unique=True)
    email = Column(String(255), nullable=False, unique=True)
    password_hash = Column(String(255), nullable=False)
    role = Column(String(16), nullable=False, default="user", server_default="user")

    __table_args__ = (
        CheckConstraint("role IN ('user', 'admin')", name="role_allowed"),
        Index("uq_users_email_lower", func.lower(email), unique=True),
    )
