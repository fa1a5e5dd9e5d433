import logging
from dataclasses import dataclass
from typing import Optional

from fastapi import Depends, HTTPException
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt

from .config import JWT_ALGORITHM, SECRET_KEY
from .errors import PermissionDeniedError

logger = logging.getLogger(__name__)

security = HTTPBearer()

ROLES = ("admin", "moderator", "doctor", "patient")
STAFF_ROLES = ("admin", "moderator", "doctor")


@dataclass(frozen=True)
class Principal:
    """Authenticated caller as asserted by the identity provider"""

    user_id: str
    role: str

    @property
    def is_staff(self) -> bool:
        return self.role in STAFF_ROLES


def decode_token(token: str) -> Principal:
    """
    Verify a bearer token issued by the identity provider and extract the principal.
    Only `sub` and `role` are read; the token is trusted once its signature checks out.
    """
    try:
        payload = jwt.decode(token, SECRET_KEY, algorithms=[JWT_ALGORITHM])
    except JWTError as e:
        logger.warning(f"❌ Token verification failed: {e}")
        raise HTTPException(status_code=401, detail="Invalid or expired token") from e

    user_id: Optional[str] = payload.get("sub")
    role: Optional[str] = payload.get("role")
    if not user_id:
        raise HTTPException(status_code=401, detail="Token has no subject")
    if role not in ROLES:
        logger.warning(f"⚠️ Token for {user_id} carries unknown role: {role}")
        raise HTTPException(status_code=401, detail="Token has no valid role")

    return Principal(user_id=str(user_id), role=role)


async def get_current_principal(
    credentials: HTTPAuthorizationCredentials = Depends(security),
) -> Principal:
    """Resolve the caller from the Authorization header"""
    return decode_token(credentials.credentials)


def require_roles(*roles: str):
    """Dependency factory restricting an endpoint to the given roles"""

    async def checker(principal: Principal = Depends(get_current_principal)) -> Principal:
        if principal.role not in roles:
            logger.warning(f"⚠️ {principal.user_id} ({principal.role}) denied, requires {roles}")
            raise PermissionDeniedError(f"Requires one of roles: {', '.join(roles)}")
        return principal

    return checker


require_staff = require_roles(*STAFF_ROLES)
require_admin = require_roles("admin")
