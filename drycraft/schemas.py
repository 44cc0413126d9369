"""
Pydantic schemas for the Dry Craft API.

Field names are camelCase because that is what the web frontend sends and
reads.
"""

from __future__ import annotations

from datetime import datetime
from typing import Annotated, Literal, Optional

from pydantic import (
    AfterValidator,
    BaseModel,
    EmailStr,
    Field,
    StringConstraints,
    field_validator,
    model_validator,
)

ReactionType = Literal["LIKE", "HEART"]
REACTION_TYPES = ("LIKE", "HEART")
NotificationType = Literal["COMMENT", "REACTION", "FOLLOW"]

# bcrypt only reads the first 72 bytes of a password.
PASSWORD_MAX_BYTES = 72
EMPTY_POST_MESSAGE = "Post must have content, images, or a video"


def _check_password(value: str) -> str:
    if not value.strip():
        raise ValueError("Password cannot be blank")
    if len(value.encode("utf-8")) > PASSWORD_MAX_BYTES:
        raise ValueError(f"Password must be at most {PASSWORD_MAX_BYTES} bytes")
    return value


# Required text: surrounding whitespace is dropped before length checks, so
# a blank value fails min_length.
Text = Annotated[str, StringConstraints(strip_whitespace=True)]
Password = Annotated[str, AfterValidator(_check_password)]


def has_post_body(
    content: Optional[str], image_urls: Optional[list], video_url: Optional[str]
) -> bool:
    return bool((content or "").strip() or image_urls or video_url)


class HealthResponse(BaseModel):
    status: str
    timestamp: datetime
    service: str


class StatusMessage(BaseModel):
    message: str


# Users and auth


class LoginRequest(BaseModel):
    username: Text = Field(..., min_length=1, max_length=50)
    password: Password = Field(..., min_length=1)


class RegisterRequest(BaseModel):
    username: Text = Field(..., min_length=1, max_length=50)
    email: EmailStr
    password: Password = Field(..., min_length=1)
    firstName: Optional[str] = Field(None, max_length=100)
    lastName: Optional[str] = Field(None, max_length=100)


class UserUpdate(BaseModel):
    firstName: Optional[str] = Field(None, max_length=100)
    lastName: Optional[str] = Field(None, max_length=100)
    bio: Optional[str] = Field(None, max_length=1000)
    profilePicture: Optional[str] = None


class FollowRequest(BaseModel):
    """``followerId`` is optional; when sent it must be the caller."""

    followerId: Optional[str] = None


class UserResponse(BaseModel):
    id: str
    username: str
    email: str
    firstName: Optional[str] = None
    lastName: Optional[str] = None
    bio: Optional[str] = None
    profilePicture: Optional[str] = None
    followers: list[str] = []
    following: list[str] = []
    createdAt: Optional[datetime] = None
    updatedAt: Optional[datetime] = None


class UserSuggestion(BaseModel):
    id: str
    username: str
    firstName: Optional[str] = None
    lastName: Optional[str] = None
    bio: Optional[str] = None
    profilePicture: Optional[str] = None
    followers: int = 0


class AuthResponse(BaseModel):
    token: str
    user: UserResponse


# Posts


class PostCreate(BaseModel):
    content: str = Field("", max_length=5000)
    imageUrls: list[str] = []
    videoUrl: Optional[str] = None

    @model_validator(mode="after")
    def _has_something_to_show(self):
        if not has_post_body(self.content, self.imageUrls, self.videoUrl):
            raise ValueError(EMPTY_POST_MESSAGE)
        return self


class PostUpdate(BaseModel):
    content: str = Field(..., max_length=5000)
    imageUrls: Optional[list[str]] = None
    videoUrl: Optional[str] = None


class CommentRequest(BaseModel):
    content: Text = Field(..., min_length=1, max_length=2000)


class ReactionRequest(BaseModel):
    reactionType: ReactionType


class CommentResponse(BaseModel):
    id: Optional[str] = None
    authorId: str
    authorName: Optional[str] = None
    content: str
    createdAt: datetime
    updatedAt: Optional[datetime] = None


class PostResponse(BaseModel):
    id: str
    content: str = ""
    authorId: str
    authorName: Optional[str] = None
    imageUrls: list[str] = []
    videoUrl: Optional[str] = None
    reactions: dict[str, ReactionType] = {}
    reactionCounts: dict[str, int] = {}
    comments: list[CommentResponse] = []
    createdAt: datetime
    updatedAt: Optional[datetime] = None

    @model_validator(mode="after")
    def _count_reactions(self):
        counts = {kind: 0 for kind in REACTION_TYPES}
        for kind in self.reactions.values():
            counts[kind] += 1
        self.reactionCounts = counts
        return self


# Marketplace


class ProductPayload(BaseModel):
    name: Text = Field(..., min_length=1, max_length=200)
    description: Text = Field(..., min_length=1, max_length=5000)
    price: float = Field(..., ge=0)
    stock: int = Field(0, ge=0)
    colors: list[str] = []
    category: Text = Field(..., min_length=1, max_length=100)
    subCategory: Optional[str] = Field(None, max_length=100)
    imageUrls: list[str] = []


class ProductResponse(BaseModel):
    id: str
    name: str
    description: str
    price: float
    stock: int
    colors: list[str] = []
    category: str
    subCategory: Optional[str] = None
    sellerId: str
    imageUrls: list[str] = []
    createdAt: datetime
    updatedAt: Optional[datetime] = None


class OrderCreate(BaseModel):
    productId: str = Field(..., min_length=1)
    quantity: int = Field(1, ge=1)
    totalPrice: float = Field(..., ge=0)
    shippingAddress: Optional[str] = Field(None, max_length=500)
    notes: Optional[str] = Field(None, max_length=1000)


class OrderResponse(BaseModel):
    id: str
    buyerId: str
    productId: str
    quantity: int
    totalPrice: float
    shippingAddress: Optional[str] = None
    notes: Optional[str] = None
    status: str
    createdAt: datetime


# Messaging


class MessageCreate(BaseModel):
    sellerId: str = Field(..., min_length=1)
    buyerId: str = Field(..., min_length=1)
    productId: Optional[str] = None
    content: Text = Field(..., min_length=1, max_length=2000)


class ReplyRequest(BaseModel):
    replyContent: str = Field(..., max_length=2000)

    @field_validator("replyContent")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("Reply content cannot be empty")
        return value.strip()


class MessageResponse(BaseModel):
    id: str
    senderId: str
    receiverId: str
    sellerId: str
    buyerId: str
    productId: Optional[str] = None
    content: str
    replyContent: Optional[str] = None
    replyAt: Optional[datetime] = None
    isRead: bool = False
    createdAt: datetime


class NotificationResponse(BaseModel):
    id: str
    recipientId: str
    senderId: str
    senderName: Optional[str] = None
    postId: Optional[str] = None
    content: str
    type: NotificationType
    read: bool = False
    createdAt: datetime


# Tutorials


class TutorialPayload(BaseModel):
    """Required-field checks happen in ``drycraft.tutorials``."""

    title: Optional[str] = None
    description: Optional[str] = None
    craftType: Optional[str] = None
    steps: Optional[list[str]] = None
    materials: Optional[list[str]] = None
    images: Optional[list[str]] = None
    videos: Optional[list[str]] = None
    userId: Optional[str] = None


class TutorialResponse(BaseModel):
    id: str
    title: str
    description: str
    craftType: str
    author: str
    steps: list[str]
    materials: list[str]
    images: list[str] = []
    videos: list[str] = []
    createdAt: datetime
    updatedAt: Optional[datetime] = None


class ProgressUpdate(BaseModel):
    stepIndex: Optional[int] = None


class ProgressResponse(BaseModel):
    id: str
    userId: str
    tutorialId: str
    completedSteps: list[int] = []
    isCompleted: bool = False
    lastUpdated: datetime


# Media


class MediaUploadRequest(BaseModel):
    filename: str = Field(..., min_length=1, max_length=255)
    contentType: str = Field(..., min_length=1, max_length=100)
    size: int = Field(..., ge=1)


class MediaUploadResponse(BaseModel):
    path: str
    uploadUrl: str
    downloadUrl: str
    mediaType: Literal["image", "video"]
