import logging
import secrets
from datetime import datetime, timedelta, timezone
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, delete, and_, func
from ..models import User, UserOtp
from ..config import settings
from ..exceptions import APIError, EmailDeliveryError, NotFound, ValidationFailed
from .email_service import EmailService, render_otp_email
from .password_service import hash_password

logger = logging.getLogger(__name__)


class OTPService:
    @staticmethod
    def generate_otp() -> str:
        """Generate a random 6-digit OTP code"""
        return str(100000 + secrets.randbelow(900000))

    @staticmethod
    def generate_reset_token() -> str:
        """32 random bytes, hex encoded"""
        return secrets.token_hex(32)

    @staticmethod
    async def create_otp(db: AsyncSession, user_id: int) -> UserOtp:
        """Replace any OTP the user has with a fresh one"""
        await db.execute(delete(UserOtp).where(UserOtp.user_id == user_id))

        otp = UserOtp(
            user_id=user_id,
            otp=OTPService.generate_otp(),
            reset_token=OTPService.generate_reset_token(),
            expires_at=datetime.now(timezone.utc) +
            timedelta(minutes=settings.otp_expiry_minutes),
        )
        db.add(otp)
        await db.commit()
        return otp

    @staticmethod
    async def send_otp(db: AsyncSession, mailer: EmailService, email: str, resend: bool = False) -> UserOtp:
        result = await db.execute(select(User).where(func.lower(User.email) == email.strip().lower()))
        user = result.scalar_one_or_none()
        if user is None:
            raise NotFound("User not found with this email")

        otp = await OTPService.create_otp(db, user.id)

        subject = "Your New Password Reset OTP" if resend else "Your Password Reset OTP"
        try:
            await mailer.send(email, subject, render_otp_email(otp.otp, settings.otp_expiry_minutes, resend))
        except EmailDeliveryError as e:
            logger.error(f"Failed to send OTP email to user {user.id}: {e}")
            raise APIError(
                "Failed to resend OTP" if resend else "Failed to send OTP", error=str(e))
        return otp

    @staticmethod
    async def verify_otp(db: AsyncSession, email: str, otp_code: str) -> str:
        """Check the code and hand back the reset token"""
        result = await db.execute(select(User).where(func.lower(User.email) == email.strip().lower()))
        user = result.scalar_one_or_none()
        if user is None:
            raise NotFound("User not found")

        stmt = select(UserOtp).where(
            and_(
                UserOtp.user_id == user.id,
                UserOtp.otp == otp_code,
                UserOtp.expires_at > datetime.now(timezone.utc),
            )
        )
        record = (await db.execute(stmt)).scalar_one_or_none()
        if record is None:
            raise ValidationFailed("Invalid or expired OTP")
        return record.reset_token

    @staticmethod
    async def reset_password(db: AsyncSession, reset_token: str, new_password: str) -> None:
        stmt = select(UserOtp).where(
            and_(
                UserOtp.reset_token == reset_token,
                UserOtp.expires_at > datetime.now(timezone.utc),
            )
        )
        record = (await db.execute(stmt)).scalar_one_or_none()
        if record is None:
            raise ValidationFailed("Invalid or expired reset token")

        user = await db.get(User, record.user_id)
        if user is None:
            raise NotFound("User not found")

        user.password = await hash_password(new_password)
        await db.execute(delete(UserOtp).where(UserOtp.user_id == user.id))
        await db.commit()
