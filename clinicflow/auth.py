import logging
from typing import Optional

from fastapi import Depends, HTTPException
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from pydantic import BaseModel, ConfigDict
from sqlalchemy.orm import Session

from .database import get_db
from .models import User, UserRole
from .security_utils import create_jwt_token, verify_jwt_token

logger = logging.getLogger(__name__)

security = HTTPBearer()


class AuthContext(BaseModel):
    """Who is acting: passed explicitly into every service operation"""

    model_config = ConfigDict(frozen=True)

    user_id: int
    role: str
    clinic_id: Optional[int] = None

    @classmethod
    def for_user(cls, user: User) -> "AuthContext":
        return cls(user_id=user.id, role=user.role, clinic_id=user.clinic_id)

    @property
    def is_super_admin(self) -> bool:
        return self.role == UserRole.SUPER_ADMIN

    def is_clinic_admin_of(self, clinic_id: int) -> bool:
        return self.role == UserRole.CLINIC_ADMIN and self.clinic_id == clinic_id

    def is_staff_of(self, clinic_id: int) -> bool:
        """Clinic admin or doctor working at `clinic_id`"""
        return (
            self.role in (UserRole.CLINIC_ADMIN, UserRole.DOCTOR) and self.clinic_id == clinic_id
        )


def create_access_token(user: User) -> str:
    """Issue a bearer token for a user"""
    return create_jwt_token({"sub": str(user.id), "role": user.role, "clinic_id": user.clinic_id})


async def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    db: Session = Depends(get_db),
) -> User:
    """Get current user from the bearer token"""

    if not credentials:
        logger.error("❌ No credentials provided")
        raise HTTPException(
            status_code=401,
            detail="Not authenticated. Please provide a valid Bearer token in the Authorization header.",
        )

    payload = verify_jwt_token(credentials.credentials)
    if not payload or not payload.get("sub"):
        raise HTTPException(
            status_code=401,
            detail="Invalid or expired token",
            headers={"X-Token-Expired": "true"},
        )

    try:
        user_id = int(payload["sub"])
    except (TypeError, ValueError) as e:
        logger.warning(f"⚠️ Token carries a malformed subject: {payload.get('sub')!r}")
        raise HTTPException(status_code=401, detail="Invalid token claims") from e

    user = db.query(User).filter(User.id == user_id).first()
    if not user:
        logger.warning(f"⚠️ Token subject {user_id} no longer exists")
        raise HTTPException(status_code=401, detail="User not found")

    return user


async def get_auth_context(current_user: User = Depends(get_current_user)) -> AuthContext:
    """Authorization context for the authenticated user (role and clinic come from the user row)"""
    return AuthContext.for_user(current_user)


def require_roles(*roles: str):
    """Dependency factory rejecting callers whose role is not in `roles`"""

    async def dependency(actor: AuthContext = Depends(get_auth_context)) -> AuthContext:
        if actor.role not in roles:
            logger.warning(f"🚫 User {actor.user_id} ({actor.role}) denied, requires {roles}")
            raise HTTPException(status_code=403, detail="Insufficient role for this operation")
        return actor

    return dependency
