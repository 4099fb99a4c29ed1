import logging
from typing import Annotated
from fastapi import APIRouter, HTTPException, Request, status, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select

from dbadmin.core import schemas, models
from dbadmin.core.database import get_db
from dbadmin.core.security import (
    get_current_session,
    get_current_user,
    hash_password,
    open_session,
    verify_password,
)

router = APIRouter(prefix="/profile", tags=["Authentication"])

db_dep = Annotated[AsyncSession, Depends(get_db)]


# Add user
@router.post(
    "/signup",
    response_model=schemas.UserResponse,
    status_code=status.HTTP_201_CREATED,
)
async def sign_up(user: schemas.CreateUser, db: db_dep):
    # Validate whether a user already exists
    query = select(models.User).where(models.User.email == user.email)
    result = await db.execute(query)
    db_user = result.scalars().first()

    if db_user:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT, detail="User already exists"
        )

    # Hash the password and add new user to the db
    try:
        new_user = models.User(
            name=user.name, email=user.email, password=hash_password(user.password)
        )
        db.add(new_user)
        await db.commit()
        await db.refresh(new_user)
        return new_user
    except Exception as error:
        await db.rollback()
        logging.error(f"Failed to add a new user: {error}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to sign up",
        )


@router.post(
    "/login", response_model=schemas.TokenResponse, status_code=status.HTTP_200_OK
)
async def verify_user(
    user_credentials: schemas.UserLogin, request: Request, db: db_dep
):
    query = select(models.User).where(models.User.email == user_credentials.email)
    result = await db.execute(query)
    db_user = result.scalars().first()

    if not db_user:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="User does not exists"
        )

    # Magic-link accounts have no password to check
    if not db_user.password or not verify_password(
        user_credentials.password, db_user.password
    ):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED, detail="Incorrect password"
        )

    if db_user.banned:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN, detail="This account is banned"
        )

    token = await open_session(db, db_user, request)
    return {"access_token": token, "token_type": "bearer"}


@router.get("/me", response_model=schemas.UserResponse)
async def get_me(current_user: Annotated[models.User, Depends(get_current_user)]):
    return current_user


# Hand the admin back their own session
@router.post("/stop-impersonating", response_model=schemas.TokenResponse)
async def stop_impersonating(
    session: Annotated[models.Session, Depends(get_current_session)],
    request: Request,
    db: db_dep,
):
    if not session.impersonated_by:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Not impersonating anyone",
        )

    query = select(models.User).where(models.User.id == session.impersonated_by)
    result = await db.execute(query)
    admin = result.scalars().first()

    await db.delete(session)
    await db.commit()

    if not admin or admin.role != "admin" or admin.banned:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="The impersonating account can no longer administer",
        )

    token = await open_session(db, admin, request)
    return {"access_token": token, "token_type": "bearer"}
