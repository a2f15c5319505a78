"""
Pytest configuration and shared fixtures.
"""

from datetime import datetime, timezone
from typing import Dict, List, Optional

import pytest
from bson import ObjectId
from fastapi.testclient import TestClient
from pymongo.errors import DuplicateKeyError

from api.config import config
from api.database import EDITABLE_BOOK_FIELDS, book_from_doc, to_object_id, user_from_doc
from api.main import app
from api.models import BookCreate, BookResponse, Role, UserRecord

STRONG_PASSWORD = "Abcdef1!"


class InMemoryDatabaseService:
    """
    Test double with the same async interface as APIDatabaseService.

    Documents are kept in the shape they have in MongoDB so the same
    document-to-model conversion is exercised.
    """

    def __init__(self):
        self.users: Dict[ObjectId, dict] = {}
        self.books: Dict[ObjectId, dict] = {}

    async def get_user_by_email(self, email: str) -> Optional[UserRecord]:
        for doc in self.users.values():
            if doc["email"] == email:
                return user_from_doc(doc)
        return None

    async def get_user_by_id(self, user_id: str) -> Optional[UserRecord]:
        doc = self.users.get(to_object_id(user_id))
        return user_from_doc(doc) if doc else None

    async def create_user(self, email: str, password_hash: str, name: str, role: Role) -> UserRecord:
        if any(doc["email"] == email for doc in self.users.values()):
            raise DuplicateKeyError("E11000 duplicate key error collection: users index: email_1")
        doc = {
            "_id": ObjectId(),
            "email": email,
            "password": password_hash,
            "name": name,
            "role": role.value,
            "createdAt": datetime.now(timezone.utc),
        }
        self.users[doc["_id"]] = doc
        return user_from_doc(doc)

    async def list_users(self) -> List[UserRecord]:
        return [user_from_doc(doc) for doc in self.users.values()]

    async def delete_user_by_email(self, email: str) -> bool:
        for key, doc in list(self.users.items()):
            if doc["email"] == email:
                del self.users[key]
                return True
        return False

    async def list_books(self) -> List[BookResponse]:
        return [book_from_doc(doc) for doc in self.books.values()]

    async def create_book(self, book: BookCreate, creator_id: str) -> BookResponse:
        now = datetime.now(timezone.utc)
        doc = book.model_dump(by_alias=True)
        doc.update({"_id": ObjectId(), "creator": ObjectId(creator_id), "createdAt": now, "updatedAt": now})
        self.books[doc["_id"]] = doc
        return book_from_doc(doc)

    async def get_book_by_id(self, book_id: str) -> Optional[BookResponse]:
        doc = self.books.get(to_object_id(book_id))
        return book_from_doc(doc) if doc else None

    async def update_book(self, book_id: str, fields: dict) -> Optional[BookResponse]:
        doc = self.books.get(to_object_id(book_id))
        if doc is None:
            return None
        doc.update({key: value for key, value in fields.items() if key in EDITABLE_BOOK_FIELDS})
        doc["updatedAt"] = datetime.now(timezone.utc)
        return book_from_doc(doc)

    async def delete_book(self, book_id: str) -> bool:
        return self.books.pop(to_object_id(book_id), None) is not None

    async def health_check(self) -> dict:
        return {"status": "healthy", "users_count": len(self.users), "books_count": len(self.books)}

    def set_role(self, email: str, role: Role) -> None:
        """Change a stored role out of band."""
        for doc in self.users.values():
            if doc["email"] == email:
                doc["role"] = role.value


@pytest.fixture(autouse=True)
def fast_password_hashing(monkeypatch):
    """Use the minimum bcrypt cost so API tests stay fast."""
    monkeypatch.setattr(config, "bcrypt_rounds", 4)


@pytest.fixture
def db_service():
    """In-memory database service."""
    return InMemoryDatabaseService()


@pytest.fixture
def client(db_service):
    """Test client wired to the in-memory database service."""
    app.state.db_service = db_service
    yield TestClient(app)
    app.state.db_service = None


@pytest.fixture
def register(client):
    """Register a user and return the issued token."""
    def _register(email: str, role: str = "Admin", password: str = STRONG_PASSWORD, name: str = "Test User") -> str:
        response = client.post(
            "/auth/register",
            json={"email": email, "password": password, "name": name, "role": role}
        )
        assert response.status_code == 201, response.json()
        return response.json()["token"]
    return _register


@pytest.fixture
def book_payload():
    """A valid book body."""
    return {
        "title": "The Left Hand of Darkness",
        "genre": "Science Fiction",
        "language": "English",
        "ratings": "4.5/5",
        "coverPage": "https://images.example.com/covers/left-hand.jpg",
        "year": 1969,
    }
