"""
API models and schemas for the FastAPI application.
"""

from datetime import datetime
from enum import Enum
from typing import List, Literal, Optional

from pydantic import BaseModel, Field


class Role(str, Enum):
    """User role enumeration."""
    ADMIN = "Admin"
    AUTHOR = "Author"
    READER = "Reader"


class UserRecord(BaseModel):
    """User as stored in the users collection."""
    id: str = Field(..., description="Unique user identifier")
    email: str = Field(..., description="Unique email address")
    name: str = Field(..., description="Display name")
    role: Role = Field(..., description="User role")
    password_hash: str = Field(..., description="bcrypt hash of the password")


class CurrentUser(BaseModel):
    """Authenticated user attached to the request (no password hash)."""
    id: str
    email: str
    name: str
    role: Role


class RegisterRequest(BaseModel):
    """Registration body."""
    email: str = Field(..., description="Unique email address")
    password: str = Field(..., description="At least 8 characters with lower, upper, digit and symbol")
    name: str = Field(..., description="Display name")
    role: Literal["Admin", "Author", "Reader"] = Field(..., description="User role")


class LoginRequest(BaseModel):
    """Login body."""
    email: str
    password: str


class BookCreate(BaseModel):
    """Validated payload for creating a book."""
    title: str
    genre: str
    language: str
    ratings: str
    cover_page: str = Field(..., alias="coverPage")
    year: int

    model_config = {"populate_by_name": True, "coerce_numbers_to_str": True}


class BookUpdate(BaseModel):
    """Partial payload for editing a book; only supplied fields are applied."""
    title: Optional[str] = None
    genre: Optional[str] = None
    language: Optional[str] = None
    ratings: Optional[str] = None
    cover_page: Optional[str] = Field(None, alias="coverPage")
    year: Optional[int] = None

    model_config = {"coerce_numbers_to_str": True}


class BookResponse(BaseModel):
    """Book response model for API."""
    id: str = Field(..., description="Unique book identifier")
    title: str = Field(..., description="Book title")
    genre: str = Field(..., description="Book genre")
    language: str = Field(..., description="Language the book is written in")
    ratings: str = Field(..., description="Rating label")
    cover_page: str = Field(..., alias="coverPage", description="URL of the cover image")
    year: int = Field(..., description="Publication year")
    creator: str = Field(..., description="Identifier of the user who created the book")
    created_at: Optional[datetime] = Field(None, alias="createdAt", description="Creation timestamp")
    updated_at: Optional[datetime] = Field(None, alias="updatedAt", description="Last update timestamp")

    model_config = {"populate_by_name": True}


class BookListResponse(BaseModel):
    """Response model for the book list."""
    message: str
    books: List[BookResponse]


class BookEnvelope(BaseModel):
    """Response model wrapping a single book."""
    message: str
    book: BookResponse


class TokenResponse(BaseModel):
    """Response returned by register and login."""
    message: str
    token: str


class MessageResponse(BaseModel):
    """Plain message response."""
    message: str


class FieldError(BaseModel):
    """A single validation failure."""
    field: str = Field(..., description="Name of the offending field")
    message: str = Field(..., description="Human-readable reason")


class ErrorResponse(BaseModel):
    """Error response model."""
    message: str = Field(..., description="Error message")
    errors: Optional[List[FieldError]] = Field(None, description="Validation failures, in rule order")


class HealthResponse(BaseModel):
    """Health check response model."""
    status: str = Field(..., description="Service status")
    timestamp: datetime = Field(..., description="Current timestamp")
    version: str = Field(..., description="API version")
    database_status: str = Field(..., description="Database connection status")
