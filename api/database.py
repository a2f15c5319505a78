"""
Database service layer for the FastAPI application.
"""

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import structlog
from bson import ObjectId
from bson.errors import InvalidId
from fastapi import Request
from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ReturnDocument

from api.exceptions import InternalError
from api.models import BookCreate, BookResponse, Role, UserRecord

logger = structlog.get_logger(__name__)

# Book fields a client may change through the edit operation
EDITABLE_BOOK_FIELDS = ("title", "genre", "language", "ratings", "coverPage", "year")


def to_object_id(value: str) -> Optional[ObjectId]:
    """Convert a string id to ObjectId; None when it is not a valid id."""
    # ObjectId(None) would mint a fresh id
    if not isinstance(value, str):
        return None
    try:
        return ObjectId(value)
    except InvalidId:
        return None


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def user_from_doc(user_doc: Dict[str, Any]) -> UserRecord:
    return UserRecord(
        id=str(user_doc["_id"]),
        email=user_doc["email"],
        name=user_doc["name"],
        role=Role(user_doc["role"]),
        password_hash=user_doc["password"],
    )


def book_from_doc(book_doc: Dict[str, Any]) -> BookResponse:
    return BookResponse(
        id=str(book_doc["_id"]),
        title=book_doc["title"],
        genre=book_doc["genre"],
        language=book_doc["language"],
        ratings=book_doc["ratings"],
        cover_page=book_doc["coverPage"],
        year=book_doc["year"],
        creator=str(book_doc["creator"]),
        created_at=book_doc.get("createdAt"),
        updated_at=book_doc.get("updatedAt"),
    )


class APIDatabaseService:
    """Database service for API operations."""

    def __init__(self, database: AsyncIOMotorDatabase):
        self.database = database
        self.users_collection = database.users
        self.books_collection = database.books

    async def ensure_indexes(self) -> None:
        """Create the indexes the API relies on."""
        try:
            # Unique email backs the duplicate-registration check
            await self.users_collection.create_index("email", unique=True)
            await self.books_collection.create_index("creator")
            logger.info("Database indexes ensured")
        except Exception as e:
            logger.error("Failed to create indexes", error=str(e))
            raise

    # Users

    async def get_user_by_email(self, email: str) -> Optional[UserRecord]:
        user_doc = await self.users_collection.find_one({"email": email})
        return user_from_doc(user_doc) if user_doc else None

    async def get_user_by_id(self, user_id: str) -> Optional[UserRecord]:
        """
        Get a user by id.

        Args:
            user_id: User identifier (ObjectId string)

        Returns:
            UserRecord if found, None otherwise (including malformed ids)
        """
        object_id = to_object_id(user_id)
        if object_id is None:
            return None
        user_doc = await self.users_collection.find_one({"_id": object_id})
        return user_from_doc(user_doc) if user_doc else None

    async def create_user(self, email: str, password_hash: str, name: str, role: Role) -> UserRecord:
        """
        Insert a new user.

        Raises pymongo.errors.DuplicateKeyError when the email is taken.
        """
        user_doc = {
            "email": email,
            "password": password_hash,
            "name": name,
            "role": role.value,
            "createdAt": _utcnow(),
        }
        result = await self.users_collection.insert_one(user_doc)
        user_doc["_id"] = result.inserted_id
        logger.info("User created", user_id=str(result.inserted_id), role=role.value)
        return user_from_doc(user_doc)

    async def list_users(self) -> List[UserRecord]:
        cursor = self.users_collection.find({}).sort("createdAt", 1)
        return [user_from_doc(doc) async for doc in cursor]

    async def delete_user_by_email(self, email: str) -> bool:
        result = await self.users_collection.delete_one({"email": email})
        return result.deleted_count > 0

    # Books

    async def list_books(self) -> List[BookResponse]:
        try:
            cursor = self.books_collection.find({})
            return [book_from_doc(doc) async for doc in cursor]
        except Exception as e:
            logger.error("Failed to list books", error=str(e))
            raise

    async def create_book(self, book: BookCreate, creator_id: str) -> BookResponse:
        """
        Insert a book owned by ``creator_id``.

        Returns:
            The stored book including its id and timestamps
        """
        now = _utcnow()
        book_doc = book.model_dump(by_alias=True)
        book_doc.update({
            "creator": ObjectId(creator_id),
            "createdAt": now,
            "updatedAt": now,
        })
        result = await self.books_collection.insert_one(book_doc)
        book_doc["_id"] = result.inserted_id
        logger.info("Book created", book_id=str(result.inserted_id), creator=creator_id)
        return book_from_doc(book_doc)

    async def get_book_by_id(self, book_id: str) -> Optional[BookResponse]:
        object_id = to_object_id(book_id)
        if object_id is None:
            return None
        book_doc = await self.books_collection.find_one({"_id": object_id})
        return book_from_doc(book_doc) if book_doc else None

    async def update_book(self, book_id: str, fields: Dict[str, Any]) -> Optional[BookResponse]:
        """
        Apply a partial update to a book.

        Args:
            book_id: Book identifier
            fields: Fields to set, keyed by their stored names; keys outside
                EDITABLE_BOOK_FIELDS are ignored

        Returns:
            The updated book, or None when no book has this id
        """
        object_id = to_object_id(book_id)
        if object_id is None:
            return None

        changes = {key: value for key, value in fields.items() if key in EDITABLE_BOOK_FIELDS}
        changes["updatedAt"] = _utcnow()

        book_doc = await self.books_collection.find_one_and_update(
            {"_id": object_id},
            {"$set": changes},
            return_document=ReturnDocument.AFTER,
        )
        return book_from_doc(book_doc) if book_doc else None

    async def delete_book(self, book_id: str) -> bool:
        """
        Delete a book by id.

        Returns:
            True if a book was removed; False for unknown or malformed ids
        """
        object_id = to_object_id(book_id)
        if object_id is None:
            return False
        result = await self.books_collection.delete_one({"_id": object_id})
        return result.deleted_count > 0

    async def health_check(self) -> Dict:
        """
        Perform database health check.

        Returns:
            Dictionary with health status
        """
        try:
            await self.database.command("ping")

            users_count = await self.users_collection.count_documents({})
            books_count = await self.books_collection.count_documents({})

            return {
                "status": "healthy",
                "users_count": users_count,
                "books_count": books_count
            }
        except Exception as e:
            logger.error("Database health check failed", error=str(e))
            return {
                "status": "unhealthy",
                "error": str(e)
            }


def get_db_service(request: Request) -> APIDatabaseService:
    """Dependency returning the database service created at startup."""
    db_service = getattr(request.app.state, "db_service", None)
    if db_service is None:
        logger.error("Database service not available", path=request.url.path)
        raise InternalError()
    return db_service
