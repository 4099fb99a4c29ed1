import uuid
from passlib.context import CryptContext
from datetime import datetime, timedelta, timezone
from fastapi import Depends, HTTPException, Request, status
from fastapi.security import OAuth2PasswordBearer
from typing import Annotated, Optional
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
import jwt

from dbadmin.core.database import get_db
from dbadmin.core import models
from dbadmin.core.config import settings
from dbadmin.core.browser.types import now_millis, to_epoch_millis

db_dep = Annotated[AsyncSession, Depends(get_db)]
# Hash mechanism
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


# Hash the password
def hash_password(password: str):
    return pwd_context.hash(password)


# Verify the password
def verify_password(plain_password, hashed_password):
    return pwd_context.verify(plain_password, hashed_password)


def token_expiry() -> datetime:
    return datetime.now(timezone.utc) + timedelta(
        minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES
    )


def create_access_token(data: dict, expires_at: datetime = None):
    to_encode = data.copy()
    to_encode.update({"exp": expires_at or token_expiry()})

    encoded_jwt = jwt.encode(
        to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM
    )

    return encoded_jwt


async def open_session(
    db: AsyncSession,
    user: models.User,
    request: Optional[Request] = None,
    impersonated_by: Optional[str] = None,
) -> str:
    """
    Record a new session row for `user` and return the access token bound to it.

    The token carries the session id ("sid"); revoking the row revokes the
    token, whatever its exp claim says.
    """
    expires_at = token_expiry()
    session = models.Session(
        id=models.new_id(),
        user_id=user.id,
        token=uuid.uuid4().hex,
        expires_at=to_epoch_millis(expires_at),
        ip_address=request.client.host if request and request.client else None,
        user_agent=request.headers.get("user-agent") if request else None,
        impersonated_by=impersonated_by,
    )
    db.add(session)
    await db.commit()

    claims = {"user_id": user.id, "role": user.role, "sid": session.id}
    if impersonated_by:
        claims["impersonated_by"] = impersonated_by
    return create_access_token(claims, expires_at=expires_at)


# tokenUrl="profile/login" if you don't have a token yet, go to this address to get one
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="profile/login")


# Decode the token and find the live session it was issued for
async def get_current_session(
    token: Annotated[str, Depends(oauth2_scheme)], db: db_dep
) -> models.Session:
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )

    try:
        payload = jwt.decode(
            token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM]
        )
        user_id: str = payload.get("user_id")
        session_id: str = payload.get("sid")

        if user_id is None or session_id is None:
            raise credentials_exception

    # Expired or tampered token
    except jwt.PyJWTError:
        raise credentials_exception

    # Revoked, expired or deleted sessions take the token down with them
    query = select(models.Session).where(
        models.Session.id == session_id,
        models.Session.user_id == user_id,
        models.Session.expires_at > now_millis(),
    )
    result = await db.execute(query)
    session = result.scalars().first()

    if session is None:
        raise credentials_exception

    return session


async def get_current_user(
    session: Annotated[models.Session, Depends(get_current_session)], db: db_dep
):
    # Go to the Database and find this specific person
    query = select(models.User).where(models.User.id == session.user_id)
    result = await db.execute(query)
    user = result.scalars().first()

    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )

    if user.banned:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN, detail="This account is banned"
        )

    return user


# The "is the caller allowed to administer" capability check
async def validate_admin_role(
    current_user: Annotated[models.User, Depends(get_current_user)],
):
    if current_user.role != "admin":
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Forbidden - admin role required",
        )
    # Admins pass straight through
    return current_user
