import logging
from typing import Annotated, List
from fastapi import APIRouter, HTTPException, Query, Request, status, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import delete, select

from dbadmin.core import schemas, models
from dbadmin.core.database import get_db
from dbadmin.core.security import hash_password, open_session, validate_admin_role

router = APIRouter(prefix="/admin/users", tags=["Users"])

db_dep = Annotated[AsyncSession, Depends(get_db)]
admin_dep = Annotated[models.User, Depends(validate_admin_role)]


async def get_user_or_404(user_id: str, db: AsyncSession) -> models.User:
    query = select(models.User).where(models.User.id == user_id)
    result = await db.execute(query)
    db_user = result.scalars().first()

    if not db_user:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"User with id: {user_id} does not exist",
        )
    return db_user


async def ensure_email_free(email: str, db: AsyncSession, user_id: str = None):
    query = select(models.User).where(models.User.email == email)
    result = await db.execute(query)
    existing = result.scalars().first()

    if existing and existing.id != user_id:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT, detail="User already exists"
        )


async def save_user(db_user: models.User, db: AsyncSession, action: str):
    try:
        db.add(db_user)
        await db.commit()
        await db.refresh(db_user)
        return db_user
    except Exception as error:
        await db.rollback()
        logging.error(f"Failed to {action} user {db_user.id}: {error}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to {action} user",
        )


# List users
@router.get("", response_model=List[schemas.UserResponse])
async def list_users(
    admin: admin_dep,
    db: db_dep,
    limit: int = Query(50, ge=1, le=100),
    offset: int = Query(0, ge=0),
):
    query = (
        select(models.User)
        .order_by(models.User.created_at.desc(), models.User.email)
        .limit(limit)
        .offset(offset)
    )
    result = await db.execute(query)
    return result.scalars().all()


# Create user
@router.post(
    "", response_model=schemas.UserResponse, status_code=status.HTTP_201_CREATED
)
async def create_user(payload: schemas.AdminCreateUser, admin: admin_dep, db: db_dep):
    await ensure_email_free(payload.email, db)

    new_user = models.User(
        name=payload.name,
        email=payload.email,
        password=hash_password(payload.password),
        role=payload.role.value,
    )
    return await save_user(new_user, db, "create")


# Get user
@router.get("/{user_id}", response_model=schemas.UserResponse)
async def get_user(user_id: str, admin: admin_dep, db: db_dep):
    return await get_user_or_404(user_id, db)


# Update name, email or role
@router.patch("/{user_id}", response_model=schemas.UserResponse)
async def update_user(
    user_id: str, payload: schemas.UserUpdate, admin: admin_dep, db: db_dep
):
    changes = payload.model_dump(exclude_unset=True, exclude_none=True)

    if (
        admin.id == user_id
        and "role" in changes
        and changes["role"] != schemas.UserRole.ADMIN
    ):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="You cannot remove your own admin role.",
        )

    db_user = await get_user_or_404(user_id, db)

    if "email" in changes and changes["email"] != db_user.email:
        await ensure_email_free(changes["email"], db, user_id)

    for field, value in changes.items():
        setattr(db_user, field, value.value if field == "role" else value)
    return await save_user(db_user, db, "update")


@router.put("/{user_id}/password")
async def set_password(
    user_id: str, payload: schemas.PasswordUpdate, admin: admin_dep, db: db_dep
):
    db_user = await get_user_or_404(user_id, db)
    db_user.password = hash_password(payload.new_password)
    await save_user(db_user, db, "set password of")
    return {"Result": "Password updated"}


@router.patch("/{user_id}/role", response_model=schemas.UserResponse)
async def set_role(
    user_id: str, payload: schemas.RoleUpdate, admin: admin_dep, db: db_dep
):
    if admin.id == user_id and payload.role != schemas.UserRole.ADMIN:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="You cannot remove your own admin role.",
        )

    db_user = await get_user_or_404(user_id, db)
    db_user.role = payload.role.value
    return await save_user(db_user, db, "update role of")


@router.post("/{user_id}/ban", response_model=schemas.UserResponse)
async def ban_user(
    user_id: str, payload: schemas.BanRequest, admin: admin_dep, db: db_dep
):
    if admin.id == user_id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="You cannot ban your own account.",
        )

    db_user = await get_user_or_404(user_id, db)
    db_user.banned = True
    db_user.ban_reason = payload.reason

    # Banned users lose every signed-in session
    await db.execute(delete(models.Session).where(models.Session.user_id == user_id))
    return await save_user(db_user, db, "ban")


@router.post("/{user_id}/unban", response_model=schemas.UserResponse)
async def unban_user(user_id: str, admin: admin_dep, db: db_dep):
    db_user = await get_user_or_404(user_id, db)
    db_user.banned = False
    db_user.ban_reason = None
    return await save_user(db_user, db, "unban")


@router.delete("/{user_id}")
async def delete_user(user_id: str, admin: admin_dep, db: db_dep):
    # Prevent Admin Suicide :D
    if admin.id == user_id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="You cannot delete your own admin account.",
        )

    user_to_delete = await get_user_or_404(user_id, db)

    # Perform Delete
    try:
        await db.execute(
            delete(models.Session).where(models.Session.user_id == user_id)
        )
        await db.delete(user_to_delete)
        await db.commit()
        return {"Result": "Successfully deleted a user"}
    except Exception as error:
        await db.rollback()
        logging.error(f"Failed to delete user {user_id}: {error}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to delete a user",
        )


# =========================
# Sessions
# =========================
@router.get("/{user_id}/sessions", response_model=List[schemas.SessionResponse])
async def list_sessions(user_id: str, admin: admin_dep, db: db_dep):
    await get_user_or_404(user_id, db)

    query = (
        select(models.Session)
        .where(models.Session.user_id == user_id)
        .order_by(models.Session.created_at.desc())
    )
    result = await db.execute(query)
    return result.scalars().all()


@router.delete("/{user_id}/sessions/{session_id}")
async def revoke_session(user_id: str, session_id: str, admin: admin_dep, db: db_dep):
    query = select(models.Session).where(
        models.Session.id == session_id, models.Session.user_id == user_id
    )
    result = await db.execute(query)
    session = result.scalars().first()

    if not session:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Session with id: {session_id} does not exist",
        )

    try:
        await db.delete(session)
        await db.commit()
        return {"Result": "Session revoked"}
    except Exception as error:
        await db.rollback()
        logging.error(f"Failed to revoke session {session_id}: {error}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to revoke session",
        )


@router.delete("/{user_id}/sessions", response_model=schemas.RevokedSessions)
async def revoke_all_sessions(user_id: str, admin: admin_dep, db: db_dep):
    await get_user_or_404(user_id, db)

    try:
        result = await db.execute(
            delete(models.Session).where(models.Session.user_id == user_id)
        )
        await db.commit()
        return {"revoked": result.rowcount}
    except Exception as error:
        await db.rollback()
        logging.error(f"Failed to revoke sessions of user {user_id}: {error}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to revoke sessions",
        )


# =========================
# Impersonation
# =========================
@router.post("/{user_id}/impersonate", response_model=schemas.TokenResponse)
async def impersonate_user(
    user_id: str, request: Request, admin: admin_dep, db: db_dep
):
    if admin.id == user_id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="You cannot impersonate yourself.",
        )

    db_user = await get_user_or_404(user_id, db)

    if db_user.banned:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Banned users cannot be impersonated.",
        )

    logging.info(f"Admin {admin.id} is impersonating user {user_id}")
    token = await open_session(db, db_user, request, impersonated_by=admin.id)
    return {"access_token": token, "token_type": "bearer"}
