from typing import Optional

from fastapi import APIRouter, Depends, File, Form, UploadFile
from sqlalchemy.ext.asyncio import AsyncSession

from ..database import get_db
from ..dependencies import get_mailer, get_storage
from ..models import User
from ..responses import success, success_with_data, success_with_token
from ..schemas import (
    ChangePasswordRequest,
    EmailRequest,
    LoginRequest,
    RegisterRequest,
    ResetPasswordRequest,
    SyncContactsRequest,
    VerifyOtpRequest,
)
from ..services import auth_service, social_service
from ..services.email_service import EmailService
from ..services.jwt_service import JWTService
from ..services.otp_service import OTPService
from ..services.storage import StorageService

router = APIRouter(
    prefix="/auth",
    tags=["authentication"],
    responses={
        401: {"description": "Invalid or missing token"},
        404: {"description": "User not found"},
        500: {"description": "Internal server error"}
    }
)


@router.post("/register")
async def register(payload: RegisterRequest, db: AsyncSession = Depends(get_db)):
    """Create an account and return a one-day access token."""
    user, token = await auth_service.register(db, payload)
    return success_with_token(token, "User registered successfully", {
        "id": user.id,
        "name": user.full_name,
        "email": user.email,
        "phone": user.phone,
        "image": user.image,
        "is_verified": user.is_verified,
        "block": user.block,
    })


@router.post("/login")
async def login(payload: LoginRequest, db: AsyncSession = Depends(get_db)):
    user, token = await auth_service.login(db, payload.email, payload.password)
    return success_with_token(token, "Login successful", {
        "id": user.id,
        "name": user.full_name,
        "email": user.email,
        "phone": user.phone,
    })


@router.get("/profile")
async def get_profile(
    current_user: User = Depends(JWTService.get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """
    The caller's profile: account fields, wishlist, highlights, top
    destinations, follower stats and how their travel compares to everyone
    else's.
    """
    data = await auth_service.profile(db, current_user)
    return success_with_data("Profile retrieved successfully", data)


@router.put("/editProfile")
async def edit_profile(
    full_name: Optional[str] = Form(None),
    phone: Optional[str] = Form(None),
    email: Optional[str] = Form(None),
    address: Optional[str] = Form(None),
    public_profile: Optional[bool] = Form(None),
    location_sharing: Optional[bool] = Form(None),
    message_request: Optional[bool] = Form(None),
    instagram_sync: Optional[bool] = Form(None),
    contact_sync: Optional[bool] = Form(None),
    notification_type: Optional[str] = Form(None),
    image: Optional[UploadFile] = File(None),
    current_user: User = Depends(JWTService.get_current_user),
    db: AsyncSession = Depends(get_db),
    storage: StorageService = Depends(get_storage),
):
    fields = {
        "full_name": full_name,
        "phone": phone,
        "email": email,
        "address": address,
        "public_profile": public_profile,
        "location_sharing": location_sharing,
        "message_request": message_request,
        "instagram_sync": instagram_sync,
        "contact_sync": contact_sync,
        "notification_type": notification_type,
    }
    user = await auth_service.edit_profile(db, storage, current_user, fields, image)
    return success_with_data("Profile updated successfully", auth_service.public_user(user))


@router.post("/changePassword")
async def change_password(
    payload: ChangePasswordRequest,
    current_user: User = Depends(JWTService.get_current_user),
    db: AsyncSession = Depends(get_db),
):
    await auth_service.change_password(db, current_user, payload.current_password, payload.new_password)
    return success("Password changed successfully")


@router.post("/sendOtp")
async def send_otp(
    payload: EmailRequest,
    db: AsyncSession = Depends(get_db),
    mailer: EmailService = Depends(get_mailer),
):
    await OTPService.send_otp(db, mailer, payload.email)
    return success("OTP sent successfully")


@router.post("/resendOtp")
async def resend_otp(
    payload: EmailRequest,
    db: AsyncSession = Depends(get_db),
    mailer: EmailService = Depends(get_mailer),
):
    await OTPService.send_otp(db, mailer, payload.email, resend=True)
    return success("New OTP sent successfully")


@router.post("/verifyOtp")
async def verify_otp(payload: VerifyOtpRequest, db: AsyncSession = Depends(get_db)):
    reset_token = await OTPService.verify_otp(db, payload.email, payload.otp)
    return success_with_data("OTP verified successfully", {"resetToken": reset_token})


@router.post("/resetPassword")
async def reset_password(payload: ResetPasswordRequest, db: AsyncSession = Depends(get_db)):
    await OTPService.reset_password(db, payload.reset_token, payload.new_password)
    return success("Password reset successfully")


@router.post("/syncContacts")
async def sync_contacts(
    payload: SyncContactsRequest,
    current_user: User = Depends(JWTService.get_current_user),
    db: AsyncSession = Depends(get_db),
):
    users = await social_service.sync_contacts(db, current_user, payload.contacts)
    return success_with_data("Contacts synced successfully", users)


@router.delete("/deleteAccount")
async def delete_account(
    current_user: User = Depends(JWTService.get_current_user),
    db: AsyncSession = Depends(get_db),
    storage: StorageService = Depends(get_storage),
):
    await auth_service.delete_account(db, storage, current_user)
    return success("Account deleted successfully")


@router.post("/terms")
async def accept_terms(
    current_user: User = Depends(JWTService.get_current_user),
    db: AsyncSession = Depends(get_db),
):
    user = await auth_service.accept_terms(db, current_user)
    return success_with_data("Terms accepted", {
        "terms_accepted": user.terms_accepted,
        "terms_accepted_at": user.terms_accepted_at,
    })
