"""SQLAlchemy models for application accounts."""

from datetime import datetime
from sqlalchemy import Column, String, Boolean, DateTime, Integer, CheckConstraint

from pintag.metadata import Base

USER_ROLES = ("user", "admin")


class User(Base):
    """Application account for taggers and admins.

    A single table with a ``role`` column covers both front-end users and
    reviewers. Failed logins are counted so the account can be locked for
    a cool-down period.

    Attributes:
        id: Integer primary key (token ``sub`` claim)
        email: Login email (unique, stored lowercased)
        display_name: Name shown next to tags and comments
        password_hash: bcrypt hash of the password
        role: 'user' or 'admin'
        is_active: Inactive accounts cannot authenticate
        login_attempts: Consecutive failed logins since the last success
        lock_until: Logins are refused until this time (UTC)
        last_login_at: Last successful login timestamp
    """

    __tablename__ = "users"

    id = Column(Integer, primary_key=True)
    email = Column(String(255), nullable=False, unique=True, index=True)
    display_name = Column(String(255), nullable=False)
    password_hash = Column(String(255), nullable=False)
    role = Column(String(20), nullable=False, default="user")
    is_active = Column(Boolean, nullable=False, default=True, index=True)

    login_attempts = Column(Integer, nullable=False, default=0)
    lock_until = Column(DateTime, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
    last_login_at = Column(DateTime, nullable=True)

    __table_args__ = (
        CheckConstraint("role IN ('user', 'admin')", name="ck_users_role"),
        # Token subjects are user ids, so a deleted id must never be handed out again.
        {"sqlite_autoincrement": True},
    )

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"

    def is_locked(self, now: datetime | None = None) -> bool:
        if self.lock_until is None:
            return False
        return self.lock_until > (now or datetime.utcnow())

    def __repr__(self) -> str:
        return f"<User(id={self.id}, email={self.email}, role={self.role})>"
