# easy_ops/core/auth_dependencies.py
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.orm import Session
from typing import Optional

from easy_ops.core.database import get_db
from easy_ops.core.jwt import JWTUtils
from easy_ops.core.security import Actor, UserRole
from easy_ops.models.profiles import Profile


security = HTTPBearer(auto_error=False)


def _resolve_role(db: Session, user_id: str, claimed: Optional[str]) -> UserRole:
    # the profiles table wins over token claims
    profile = db.query(Profile).filter(Profile.id == user_id).first()
    raw = profile.role if profile and profile.role else claimed
    try:
        return UserRole(raw) if raw else UserRole.STAFF
    except ValueError:
        return UserRole.STAFF


def get_current_account(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: Session = Depends(get_db)
) -> Actor:
    if not credentials:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication required"
        )

    payload = JWTUtils.decode_access_token(credentials.credentials)
    if not payload or not payload.get("sub"):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token"
        )

    user_id = str(payload["sub"])
    return Actor(user_id=user_id, role=_resolve_role(db, user_id, JWTUtils.role_claim(payload)))


def require_role(allowed_roles: list[UserRole]):
    """
    Dependency that only lets the listed roles through. Admins always pass.

    Examples:
    - require_role([UserRole.MANAGER])  # managers and admins
    """
    def role_checker(actor: Actor = Depends(get_current_account)) -> Actor:
        if actor.role == UserRole.ADMIN:
            return actor

        if actor.role not in allowed_roles:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Role '{actor.role.value}' not authorized. Required: {[r.value for r in allowed_roles]}"
            )
        return actor

    return role_checker
