import re
from pydantic import BaseModel, Field, ConfigDict, EmailStr, field_validator, model_validator
from typing import Optional, List, Literal
from datetime import datetime, date


PASSWORD_SPECIAL_CHARS = re.compile(r'[!@#$%^&*(),.?":{}|<>]')


def check_password_strength(value: str) -> str:
    if len(value) < 6:
        raise ValueError("Password must be at least 6 characters long")
    if not re.search(r"\d", value):
        raise ValueError("Password must contain at least one number")
    if not PASSWORD_SPECIAL_CHARS.search(value):
        raise ValueError(
            "Password must contain at least one special character")
    return value


# Auth

class RegisterRequest(BaseModel):
    name: str = Field(..., min_length=1, examples=["Jane Traveler"])
    phone: Optional[str] = Field(None, examples=["+15551234567"])
    email: EmailStr
    password: str
    confirm_password: str = Field(..., alias="confirmPassword")
    model_config = ConfigDict(populate_by_name=True)

    @field_validator("password")
    @classmethod
    def _strong_password(cls, v: str) -> str:
        return check_password_strength(v)

    @model_validator(mode="after")
    def _passwords_match(self):
        if self.password != self.confirm_password:
            raise ValueError("Passwords do not match")
        return self


class LoginRequest(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=1)


class ChangePasswordRequest(BaseModel):
    current_password: str = Field(..., min_length=1)
    new_password: str
    confirm_password: str

    @field_validator("new_password")
    @classmethod
    def _strong_password(cls, v: str) -> str:
        return check_password_strength(v)

    @model_validator(mode="after")
    def _passwords_match(self):
        if self.new_password != self.confirm_password:
            raise ValueError(
                "New password and confirm password do not match")
        return self


class EmailRequest(BaseModel):
    email: EmailStr


class VerifyOtpRequest(BaseModel):
    email: EmailStr
    otp: str = Field(..., min_length=6, max_length=6)


class ResetPasswordRequest(BaseModel):
    reset_token: str = Field(..., alias="resetToken", min_length=1)
    new_password: str = Field(..., alias="newPassword")
    confirm_password: str = Field(..., alias="confirmPassword")
    model_config = ConfigDict(populate_by_name=True)

    @field_validator("new_password")
    @classmethod
    def _strong_password(cls, v: str) -> str:
        return check_password_strength(v)

    @model_validator(mode="after")
    def _passwords_match(self):
        if self.new_password != self.confirm_password:
            raise ValueError("Passwords do not match")
        return self


class SyncContactsRequest(BaseModel):
    contacts: List[str] = Field(..., min_length=1)


# Social

class TargetUserRequest(BaseModel):
    target_user_id: int


class PostRef(BaseModel):
    post_id: int


class CommentRequest(BaseModel):
    comment: str = Field(..., min_length=1, max_length=2000)

    @field_validator("comment")
    @classmethod
    def _not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Comment cannot be empty")
        return v.strip()


class FlagPostRequest(BaseModel):
    post_id: int
    reason: Optional[str] = Field(None, max_length=1000)


class FollowRequestAction(BaseModel):
    action: Literal["accept", "reject"]


class InstagramSyncRequest(BaseModel):
    code: str = Field(..., min_length=1)


# Notifications

class NotificationCreate(BaseModel):
    user_id: int
    notification_type: int = Field(..., ge=1, le=7)
    message: str = Field(..., min_length=1)
    title: Optional[str] = None


class NotificationReadRequest(BaseModel):
    ids: Optional[List[int]] = None


class FcmTokenRequest(BaseModel):
    token: str = Field(..., min_length=1)
    device_type: Optional[Literal["android", "ios", "web"]] = None


# Admin

class AdminBlockRequest(BaseModel):
    user_id: int
    block: bool


class AdminUserCreate(BaseModel):
    full_name: str = Field(..., min_length=1)
    email: EmailStr
    password: str

    @field_validator("password")
    @classmethod
    def _strong_password(cls, v: str) -> str:
        return check_password_strength(v)


class AdminUserUpdate(BaseModel):
    full_name: Optional[str] = None
    email: Optional[EmailStr] = None
    password: Optional[str] = None

    @field_validator("password")
    @classmethod
    def _strong_password(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        return check_password_strength(v)


class FlagReviewRequest(BaseModel):
    status: Literal["approved", "declined"]
    admin_response: Optional[str] = None


# Responses

class UserSummary(BaseModel):
    id: int
    full_name: Optional[str] = None
    email: Optional[str] = None
    image: Optional[str] = None
    model_config = ConfigDict(from_attributes=True)


class UserResponse(UserSummary):
    phone: Optional[str] = None
    address: Optional[str] = None
    is_verified: bool
    block: bool
    public_profile: bool
    instagram_sync: bool
    contact_sync: bool
    location_sharing: bool
    message_request: bool
    notification_type: str
    terms_accepted: bool
    terms_accepted_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class AdminUserResponse(BaseModel):
    id: int
    full_name: Optional[str] = None
    email: str
    image: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    model_config = ConfigDict(from_attributes=True)


class PhotoResponse(BaseModel):
    id: int
    image_url: str
    model_config = ConfigDict(from_attributes=True)


class PostResponse(BaseModel):
    id: int
    user_id: int
    country: str
    city: str
    continent: Optional[str] = None
    longitude: Optional[float] = None
    latitude: Optional[float] = None
    visit_date: date
    reason_for_visit: str
    overall_rating: Optional[int] = None
    cost_rating: Optional[int] = None
    safety_rating: Optional[int] = None
    food_rating: Optional[int] = None
    experience: Optional[str] = None
    place_type: Optional[str] = None
    tags: Optional[str] = None
    like_count: int
    comment_count: int
    created_at: Optional[datetime] = None
    user: Optional[UserSummary] = None
    photos: List[PhotoResponse] = []
    model_config = ConfigDict(from_attributes=True)


class CommentResponse(BaseModel):
    id: int
    post_id: int
    comment: str
    created_at: Optional[datetime] = None
    user: Optional[UserSummary] = None
    model_config = ConfigDict(from_attributes=True)


class HighlightResponse(BaseModel):
    id: int
    type: str
    value: str
    count: int
    model_config = ConfigDict(from_attributes=True)


class TopDestinationResponse(BaseModel):
    id: int
    type: str
    value: str
    count: int
    visited: bool
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    model_config = ConfigDict(from_attributes=True)


class NotificationResponse(BaseModel):
    id: int
    user_id: int
    notification_type: int
    title: Optional[str] = None
    message: str
    is_read: bool
    created_at: Optional[datetime] = None
    model_config = ConfigDict(from_attributes=True)


class FollowRequestResponse(BaseModel):
    id: int
    requester_id: int
    target_user_id: int
    status: str
    created_at: Optional[datetime] = None
    requester: Optional[UserSummary] = None
    model_config = ConfigDict(from_attributes=True)


class FlaggedContentResponse(BaseModel):
    id: int
    post_id: int
    user_id: int
    reason: Optional[str] = None
    status: str
    admin_response: Optional[str] = None
    created_at: Optional[datetime] = None
    post: Optional[PostResponse] = None
    user: Optional[UserSummary] = None
    model_config = ConfigDict(from_attributes=True)
