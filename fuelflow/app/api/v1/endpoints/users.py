from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.orm import Session

from fuelflow.app.api.deps import admin_only, client_ip, get_current_user
from fuelflow.app.core.database import get_db
from fuelflow.app.models.user import User
from fuelflow.app.schemas.user import (
    ChangePasswordIn,
    MessageOut,
    UserCreate,
    UserOut,
    UserUpdate,
)
from fuelflow.app.services.user_management import (
    change_own_password,
    create_user,
    delete_user,
    list_users,
    toggle_user_active,
    update_user,
)

router = APIRouter()


@router.get("", response_model=list[UserOut])
def list_all_users(
    db: Session = Depends(get_db),
    _current_user: User = Depends(admin_only),
) -> list[User]:
    """List all users. Admin only."""
    return list_users(db)


@router.post("", response_model=UserOut, status_code=status.HTTP_201_CREATED)
def create_new_user(
    body: UserCreate,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(admin_only),
) -> User:
    """Create a new user account. Admin only."""
    return create_user(
        db,
        username=body.username,
        password=body.password,
        role=body.role,
        admin_id=current_user.id,
        station_id=body.station_id,
        full_name=body.full_name,
        email=body.email,
        is_active=body.is_active,
        ip_address=client_ip(request),
    )


@router.post("/change-password", response_model=MessageOut)
def change_my_password(
    body: ChangePasswordIn,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> dict[str, str]:
    """Change own password. Any authenticated user."""
    change_own_password(
        db,
        user_id=current_user.id,
        current_password=body.current_password,
        new_password=body.new_password,
    )
    return {"detail": "Password changed successfully"}


@router.put("/{user_id}", response_model=UserOut)
def update_existing_user(
    user_id: UUID,
    body: UserUpdate,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(admin_only),
) -> User:
    """Update a user's profile, role, station or active flag. Admin only."""
    return update_user(
        db,
        user_id=user_id,
        admin_id=current_user.id,
        ip_address=client_ip(request),
        **body.model_dump(exclude_unset=True),
    )


@router.patch("/{user_id}/toggle-active", response_model=UserOut)
def toggle_active(
    user_id: UUID,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(admin_only),
) -> User:
    """Toggle a user's active status. Admin only."""
    return toggle_user_active(
        db, user_id=user_id, admin_id=current_user.id, ip_address=client_ip(request)
    )


@router.delete("/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
def remove_user(
    user_id: UUID,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(admin_only),
) -> None:
    delete_user(db, user_id=user_id, admin_id=current_user.id, ip_address=client_ip(request))
