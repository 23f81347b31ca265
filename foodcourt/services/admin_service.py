import uuid

from fastapi import HTTPException, status
from sqlalchemy import func, select
from sqlalchemy.orm import Session

from foodcourt.auth.passwords import hash_password, verify_password
from foodcourt.config import settings
from foodcourt.models.admin import Admin
from foodcourt.observability import log_event


def _active_admin_by_username(db: Session, username: str) -> Admin | None:
    return db.scalar(
        select(Admin).where(Admin.username == username, Admin.deleted_at.is_(None))
    )


def authenticate_admin(db: Session, username: str, password: str) -> Admin | None:
    admin = _active_admin_by_username(db, username.strip())
    if admin is None or not verify_password(password, admin.password_hash):
        return None
    return admin


def seed_admin_from_settings(db: Session) -> Admin | None:
    """Create the bootstrap admin from ADMIN_USERNAME/ADMIN_PASSWORD when none exists."""
    existing = db.scalar(select(func.count()).select_from(Admin).where(Admin.deleted_at.is_(None)))
    if existing:
        return None

    admin = Admin(
        username=settings.admin_username,
        password_hash=hash_password(settings.admin_password),
        name=settings.admin_name,
    )
    db.add(admin)
    db.commit()
    db.refresh(admin)
    log_event("admin_seeded", username=admin.username)
    return admin


def get_admin(db: Session, admin_id: str | uuid.UUID) -> Admin:
    try:
        resolved = admin_id if isinstance(admin_id, uuid.UUID) else uuid.UUID(admin_id)
    except ValueError as err:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="Admin not found"
        ) from err
    admin = db.get(Admin, resolved)
    if admin is None or admin.is_deleted:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Admin not found")
    return admin


def update_admin_profile(
    db: Session,
    admin_id: str,
    *,
    name: str | None,
    username: str | None,
) -> Admin:
    admin = get_admin(db, admin_id)
    if username is not None and username != admin.username:
        taken = _active_admin_by_username(db, username)
        if taken is not None and taken.id != admin.id:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT, detail="Username already taken"
            )
        admin.username = username
    if name is not None:
        admin.name = name

    db.commit()
    db.refresh(admin)
    log_event("admin_profile_updated", username=admin.username)
    return admin


def change_admin_password(
    db: Session, admin_id: str, *, current_password: str, new_password: str
) -> None:
    admin = get_admin(db, admin_id)
    if not verify_password(current_password, admin.password_hash):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST, detail="Current password is incorrect"
        )
    admin.password_hash = hash_password(new_password)
    db.commit()
    log_event("admin_password_changed", username=admin.username)
