from sqlalchemy import Column, Integer, String, DateTime, Date, Boolean, ForeignKey, Text, Float, BigInteger, UniqueConstraint, Index
from sqlalchemy.orm import declarative_base
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from datetime import datetime, timezone

Base = declarative_base()


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    full_name = Column(String, nullable=True)
    email = Column(String, unique=True, index=True, nullable=False)
    password = Column(String, nullable=False)
    phone = Column(String, index=True, nullable=True)
    image = Column(String, nullable=True)
    address = Column(String, nullable=True)
    is_verified = Column(Boolean, nullable=False, default=False)
    block = Column(Boolean, nullable=False, default=False)
    # Preferences
    public_profile = Column(Boolean, nullable=False, default=True)
    instagram_sync = Column(Boolean, nullable=False, default=False)
    contact_sync = Column(Boolean, nullable=False, default=False)
    location_sharing = Column(Boolean, nullable=False, default=False)
    message_request = Column(Boolean, nullable=False, default=True)
    # 0:all,1:new follower,2:message,3:like/comment,4:follow,
    # 5:follow request,6:follow request accepted,7:follow request rejected
    notification_type = Column(String, nullable=False, default="0")
    # Instagram long-lived token
    instagram_access_token = Column(Text, nullable=True)
    instagram_user_id = Column(String, nullable=True)
    instagram_token_expires_in = Column(Integer, nullable=True)  # seconds
    instagram_token_last_refreshed = Column(BigInteger, nullable=True)  # epoch ms
    # Terms of service
    terms_accepted = Column(Boolean, nullable=False, default=False)
    terms_accepted_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True),
                        default=utcnow, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), default=utcnow,
                        onupdate=utcnow)


class AdminUser(Base):
    __tablename__ = "admin_users"

    id = Column(Integer, primary_key=True, index=True)
    full_name = Column(String, nullable=True)
    email = Column(String, unique=True, index=True, nullable=False)
    password = Column(String, nullable=False)
    image = Column(String, nullable=True)
    created_at = Column(DateTime(timezone=True),
                        default=utcnow, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), default=utcnow,
                        onupdate=utcnow)


class Post(Base):
    __tablename__ = "posts"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey(
        "users.id", ondelete="CASCADE"), nullable=False, index=True)
    country = Column(String, nullable=False, index=True)
    city = Column(String, nullable=False, index=True)
    continent = Column(String, nullable=True)
    longitude = Column(Float, nullable=True)
    latitude = Column(Float, nullable=True)
    visit_date = Column(Date, nullable=False)
    reason_for_visit = Column(String, nullable=False)
    overall_rating = Column(Integer, nullable=True)
    cost_rating = Column(Integer, nullable=True)
    safety_rating = Column(Integer, nullable=True)
    food_rating = Column(Integer, nullable=True)
    experience = Column(Text, nullable=True)
    place_type = Column(String, nullable=True)
    tags = Column(String, nullable=True)  # comma-separated
    like_count = Column(Integer, nullable=False, default=0)
    comment_count = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime(timezone=True),
                        default=utcnow, server_default=func.now(), index=True)
    updated_at = Column(DateTime(timezone=True), default=utcnow,
                        onupdate=utcnow)

    user = relationship("User")
    photos = relationship("Photo", back_populates="post",
                          order_by="Photo.id", passive_deletes=True)


class Photo(Base):
    __tablename__ = "photos"

    id = Column(Integer, primary_key=True, index=True)
    post_id = Column(Integer, ForeignKey(
        "posts.id", ondelete="CASCADE"), nullable=False, index=True)
    image_url = Column(String, nullable=False)
    created_at = Column(DateTime(timezone=True),
                        default=utcnow, server_default=func.now())

    post = relationship("Post", back_populates="photos")


class Follower(Base):
    """follower_id follows user_id."""
    __tablename__ = "followers"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey(
        "users.id", ondelete="CASCADE"), nullable=False, index=True)
    follower_id = Column(Integer, ForeignKey(
        "users.id", ondelete="CASCADE"), nullable=False, index=True)
    created_at = Column(DateTime(timezone=True),
                        default=utcnow, server_default=func.now())

    user = relationship("User", foreign_keys=[user_id])
    follower = relationship("User", foreign_keys=[follower_id])

    __table_args__ = (
        UniqueConstraint("follower_id", "user_id",
                         name="uq_followers_follower_user"),
    )


class FollowRequest(Base):
    __tablename__ = "follow_requests"

    id = Column(Integer, primary_key=True, index=True)
    requester_id = Column(Integer, ForeignKey(
        "users.id", ondelete="CASCADE"), nullable=False, index=True)
    target_user_id = Column(Integer, ForeignKey(
        "users.id", ondelete="CASCADE"), nullable=False, index=True)
    # pending|accepted|rejected|cancelled
    status = Column(String, nullable=False, default="pending")
    created_at = Column(DateTime(timezone=True),
                        default=utcnow, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), default=utcnow,
                        onupdate=utcnow)

    requester = relationship("User", foreign_keys=[requester_id])
    target_user = relationship("User", foreign_keys=[target_user_id])


class Like(Base):
    __tablename__ = "likes"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey(
        "users.id", ondelete="CASCADE"), nullable=False, index=True)
    post_id = Column(Integer, ForeignKey(
        "posts.id", ondelete="CASCADE"), nullable=False, index=True)
    created_at = Column(DateTime(timezone=True),
                        default=utcnow, server_default=func.now())

    __table_args__ = (
        UniqueConstraint("user_id", "post_id", name="uq_likes_user_post"),
    )


class Comment(Base):
    __tablename__ = "comments"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey(
        "users.id", ondelete="CASCADE"), nullable=False, index=True)
    post_id = Column(Integer, ForeignKey(
        "posts.id", ondelete="CASCADE"), nullable=False, index=True)
    comment = Column(Text, nullable=False)
    created_at = Column(DateTime(timezone=True),
                        default=utcnow, server_default=func.now())

    user = relationship("User")


class Wishlist(Base):
    __tablename__ = "wishlists"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey(
        "users.id", ondelete="CASCADE"), nullable=False, index=True)
    post_id = Column(Integer, ForeignKey(
        "posts.id", ondelete="CASCADE"), nullable=False, index=True)
    # "<city>,<country>"
    destination = Column(String, nullable=True)
    created_at = Column(DateTime(timezone=True),
                        default=utcnow, server_default=func.now())

    post = relationship("Post")

    __table_args__ = (
        UniqueConstraint("user_id", "post_id", name="uq_wishlists_user_post"),
    )


class Highlight(Base):
    __tablename__ = "highlights"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey(
        "users.id", ondelete="CASCADE"), nullable=False, index=True)
    type = Column(String, nullable=False)  # continent|country|city
    value = Column(String, nullable=False)
    count = Column(Integer, nullable=False, default=1)
    created_at = Column(DateTime(timezone=True),
                        default=utcnow, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), default=utcnow,
                        onupdate=utcnow)

    __table_args__ = (
        UniqueConstraint("user_id", "type", "value",
                         name="uq_highlights_user_type_value"),
    )


class TopDestination(Base):
    __tablename__ = "top_destinations"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey(
        "users.id", ondelete="CASCADE"), nullable=False, index=True)
    type = Column(String, nullable=False)  # continent|country|city
    value = Column(String, nullable=False)
    count = Column(Integer, nullable=False, default=1)
    visited = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True),
                        default=utcnow, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), default=utcnow,
                        onupdate=utcnow)

    __table_args__ = (
        UniqueConstraint("user_id", "type", "value",
                         name="uq_top_destinations_user_type_value"),
        Index("ix_top_destinations_user_type", "user_id", "type"),
    )


class UserOtp(Base):
    __tablename__ = "user_otps"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey(
        "users.id", ondelete="CASCADE"), nullable=False, unique=True)
    otp = Column(String(6), nullable=False)
    reset_token = Column(String(64), nullable=False, index=True)
    expires_at = Column(DateTime(timezone=True), nullable=False)
    created_at = Column(DateTime(timezone=True),
                        default=utcnow, server_default=func.now())


class FlaggedContent(Base):
    __tablename__ = "flagged_content"

    id = Column(Integer, primary_key=True, index=True)
    post_id = Column(Integer, ForeignKey(
        "posts.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey(
        "users.id", ondelete="CASCADE"), nullable=False, index=True)
    reason = Column(Text, nullable=True)
    # pending|approved|declined
    status = Column(String, nullable=False, default="pending", index=True)
    admin_response = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True),
                        default=utcnow, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), default=utcnow,
                        onupdate=utcnow)

    post = relationship("Post")
    user = relationship("User")


class UserBlock(Base):
    __tablename__ = "user_blocks"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey(
        "users.id", ondelete="CASCADE"), nullable=False, index=True)
    target_user_id = Column(Integer, ForeignKey(
        "users.id", ondelete="CASCADE"), nullable=False, index=True)
    created_at = Column(DateTime(timezone=True),
                        default=utcnow, server_default=func.now())

    blocked = relationship("User", foreign_keys=[target_user_id])

    __table_args__ = (
        UniqueConstraint("user_id", "target_user_id",
                         name="uq_user_blocks_user_target"),
    )


class Notification(Base):
    __tablename__ = "notifications"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey(
        "users.id", ondelete="CASCADE"), nullable=False, index=True)
    notification_type = Column(Integer, nullable=False)
    title = Column(String, nullable=True)
    message = Column(String, nullable=False)
    is_read = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True),
                        default=utcnow, server_default=func.now(), index=True)


class FcmToken(Base):
    __tablename__ = "fcm_tokens"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey(
        "users.id", ondelete="CASCADE"), nullable=False, index=True)
    token = Column(String, nullable=False, unique=True)
    device_type = Column(String, nullable=True)  # android|ios|web
    created_at = Column(DateTime(timezone=True),
                        default=utcnow, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), default=utcnow,
                        onupdate=utcnow)
