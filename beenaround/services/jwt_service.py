from datetime import datetime, timedelta, timezone
from typing import Optional
from jose import ExpiredSignatureError, JWTError, jwt
from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from ..config import settings
from ..database import get_db
from ..exceptions import Forbidden, TokenExpired, Unauthorized
from ..models import AdminUser, User

# JWT token scheme; a missing header is reported by us as 401, not by FastAPI as 403
security = HTTPBearer(auto_error=False)

ADMIN_ROLE = "admin"


class JWTService:
    @staticmethod
    def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
        """Create a JWT access token"""
        to_encode = data.copy()

        if expires_delta:
            expire = datetime.now(timezone.utc) + expires_delta
        else:
            expire = datetime.now(timezone.utc) + \
                timedelta(minutes=settings.jwt_expiry_minutes)

        to_encode.update({"exp": expire})
        encoded_jwt = jwt.encode(
            to_encode,
            settings.jwt_secret_key,
            algorithm=settings.jwt_algorithm
        )
        return encoded_jwt

    @staticmethod
    def create_user_token(user: User) -> str:
        return JWTService.create_access_token(
            {"id": user.id, "email": user.email},
            timedelta(minutes=settings.jwt_expiry_minutes),
        )

    @staticmethod
    def create_admin_token(admin: AdminUser) -> str:
        return JWTService.create_access_token(
            {"id": admin.id, "email": admin.email, "role": ADMIN_ROLE},
            timedelta(minutes=settings.admin_jwt_expiry_minutes),
        )

    @staticmethod
    def verify_token(token: str) -> dict:
        """Verify and decode a JWT token"""
        try:
            payload = jwt.decode(
                token,
                settings.jwt_secret_key,
                algorithms=[settings.jwt_algorithm]
            )
        except ExpiredSignatureError as e:
            raise TokenExpired(error=str(e))
        except JWTError as e:
            raise Unauthorized("Invalid token", error=str(e))

        if not isinstance(payload.get("id"), int):
            raise Unauthorized("Invalid token")
        return payload

    @staticmethod
    def _payload_from(credentials: Optional[HTTPAuthorizationCredentials]) -> dict:
        if credentials is None or not credentials.credentials:
            raise Unauthorized("Missing authorization header")
        return JWTService.verify_token(credentials.credentials)

    @staticmethod
    async def get_current_user(
        credentials: Optional[HTTPAuthorizationCredentials] = Depends(
            security),
        db: AsyncSession = Depends(get_db)
    ) -> User:
        """Get the current authenticated user from JWT token"""
        payload = JWTService._payload_from(credentials)
        if payload.get("role") == ADMIN_ROLE:
            raise Unauthorized("Invalid token")

        result = await db.execute(select(User).where(User.id == payload["id"]))
        user = result.scalar_one_or_none()

        if user is None:
            raise Unauthorized("User not found")

        if user.block:
            raise Forbidden("Your account has been blocked")

        return user

    @staticmethod
    async def get_current_admin(
        credentials: Optional[HTTPAuthorizationCredentials] = Depends(
            security),
        db: AsyncSession = Depends(get_db)
    ) -> AdminUser:
        """Get the admin user behind an admin-role token"""
        payload = JWTService._payload_from(credentials)
        if payload.get("role") != ADMIN_ROLE:
            raise Forbidden("Forbidden: Admin access only")

        result = await db.execute(select(AdminUser).where(AdminUser.id == payload["id"]))
        admin = result.scalar_one_or_none()
        if admin is None:
            raise Forbidden("Forbidden: Admin access only")
        return admin
