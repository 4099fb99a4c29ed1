import uuid

from sqlalchemy import (
    Column,
    ForeignKey,
    Integer,
    BigInteger,
    String,
    Boolean,
    Text,
    JSON,
    false,
)
from sqlalchemy.orm import relationship
from sqlalchemy.types import TypeDecorator

from dbadmin.core.database import Base
from dbadmin.core.browser.types import now_millis, to_epoch_millis


class EpochMillis(TypeDecorator):
    """
    Timestamp stored as integer milliseconds since the epoch.

    Accepts datetimes on the way in so ORM code can keep using them,
    but always hands back plain integers.
    """

    impl = BigInteger
    cache_ok = True

    # Name reported to the database browser's type mapper
    admin_type_name = "EPOCHMILLIS"

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        return to_epoch_millis(value)


def new_id() -> str:
    return str(uuid.uuid4())


# =========================
# User
# =========================
class User(Base):
    __tablename__ = "user"

    id = Column(String, primary_key=True, default=new_id)

    name = Column(String, nullable=False)
    email = Column(String, nullable=False, unique=True, index=True)
    email_verified = Column(
        Boolean, nullable=False, default=False, server_default=false()
    )
    image = Column(String, nullable=True)
    # Empty for accounts that only sign in through magic links
    password = Column(String, nullable=True)

    role = Column(String, nullable=False, default="user", server_default="user")
    banned = Column(Boolean, nullable=False, default=False, server_default=false())
    ban_reason = Column(Text, nullable=True)

    created_at = Column(EpochMillis, nullable=False, default=now_millis)
    updated_at = Column(
        EpochMillis, nullable=False, default=now_millis, onupdate=now_millis
    )

    # Relationships
    sessions = relationship(
        "Session",
        back_populates="user",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    posts = relationship(
        "Post",
        back_populates="author",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )


# =========================
# Session (one per signed-in device)
# =========================
class Session(Base):
    __tablename__ = "session"

    id = Column(String, primary_key=True, default=new_id)

    user_id = Column(
        String,
        ForeignKey("user.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    token = Column(String, nullable=False, unique=True)
    expires_at = Column(EpochMillis, nullable=False)
    ip_address = Column(String, nullable=True)
    user_agent = Column(String, nullable=True)
    impersonated_by = Column(String, nullable=True)

    created_at = Column(EpochMillis, nullable=False, default=now_millis)
    updated_at = Column(
        EpochMillis, nullable=False, default=now_millis, onupdate=now_millis
    )

    # Relationships
    user = relationship("User", back_populates="sessions")


# =========================
# Post
# =========================
class Post(Base):
    __tablename__ = "post"

    id = Column(Integer, primary_key=True, autoincrement=True)

    title = Column(String, nullable=False)
    content = Column(Text, nullable=False)

    user_id = Column(
        String,
        ForeignKey("user.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    created_at = Column(EpochMillis, nullable=False, default=now_millis)

    # Relationships
    author = relationship("User", back_populates="posts")


# =========================
# Passwordless sign-in
# =========================
class AuthToken(Base):
    __tablename__ = "auth_tokens"

    token = Column(String, primary_key=True)

    email = Column(String, nullable=False)
    callback_url = Column(String, nullable=True)
    ua_hash = Column(String, nullable=True)

    expires_at = Column(EpochMillis, nullable=False)
    consumed_at = Column(EpochMillis, nullable=True)
    created_at = Column(EpochMillis, nullable=False)


class MagicLink(Base):
    __tablename__ = "magic_links"

    cid = Column(String, primary_key=True)

    email = Column(String, nullable=False)
    verify_url = Column(String, nullable=False)

    expires_at = Column(EpochMillis, nullable=False)
    created_at = Column(EpochMillis, nullable=False)


# =========================
# Free-form app settings
# =========================
class AppSetting(Base):
    __tablename__ = "app_settings"

    key = Column(String, primary_key=True)

    value = Column(JSON, nullable=True)
    description = Column(Text, nullable=True)

    updated_at = Column(
        EpochMillis, nullable=False, default=now_millis, onupdate=now_millis
    )
