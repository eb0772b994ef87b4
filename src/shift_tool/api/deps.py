"""API dependencies - actor resolution, role checks and database session"""
from typing import Annotated
from fastapi import Depends, HTTPException, Header
from sqlalchemy.orm import Session
from sqlalchemy import select

from src.shift_tool.database import get_db
from src.shift_tool.models.user import User, UserRole


def get_current_user(
    db: Session = Depends(get_db),
    x_user_id: int = Header(..., description="ID of the acting user")
) -> User:
    user = db.execute(
        select(User).where(User.id == x_user_id, User.is_active == True)
    ).scalar_one_or_none()
    
    if not user:
        raise HTTPException(status_code=401, detail="User not found or inactive")
    
    return user


def can_import_shifts(user: User) -> bool:
    """Managers and admins may bulk-import shifts; staff may not"""
    return user.role in [UserRole.ADMIN, UserRole.MANAGER]


def require_manager_or_admin(current_user: User = Depends(get_current_user)) -> User:
    if not can_import_shifts(current_user):
        raise HTTPException(status_code=403, detail="Only managers and admins can import shifts")
    return current_user


CurrentUser = Annotated[User, Depends(get_current_user)]
DbSession = Annotated[Session, Depends(get_db)]
ManagerUser = Annotated[User, Depends(require_manager_or_admin)]
