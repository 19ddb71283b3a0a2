"""Admin-only endpoints. Every route requires a session with role 'admin'."""

from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from app.api.routes.auth import require_admin
from app.core.database import get_db
from app.schemas.auth import UserListItem, UsersListResponse
from app.services import auth as auth_service
from app.services.auth import StoreError

router = APIRouter(dependencies=[Depends(require_admin)])


@router.get("/users", response_model=UsersListResponse)
def list_users(
    db: Annotated[Session, Depends(get_db)],
) -> UsersListResponse:
    """List all users without password hashes."""
    try:
        users = auth_service.list_users(db)
    except StoreError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message) from e
    return UsersListResponse(users=[UserListItem.model_validate(u) for u in users])
