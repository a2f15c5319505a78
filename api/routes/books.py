"""Book handlers: list, add, edit and delete."""

from typing import Any, Dict

import structlog
from fastapi import APIRouter, Depends, HTTPException, status

from api.auth import require_roles
from api.database import APIDatabaseService, get_db_service
from api.exceptions import InternalError, NotFoundError
from api.models import (
    BookCreate, BookEnvelope, BookListResponse, BookUpdate,
    CurrentUser, ErrorResponse, MessageResponse, Role
)
from api.validation import book_rules, json_body, validate_body

logger = structlog.get_logger(__name__)

router = APIRouter()

_AUTH_ERRORS = {
    status.HTTP_401_UNAUTHORIZED: {"model": ErrorResponse},
    status.HTTP_500_INTERNAL_SERVER_ERROR: {"model": ErrorResponse},
}


@router.get("", response_model=BookListResponse, responses=_AUTH_ERRORS)
async def list_books(
    current_user: CurrentUser = Depends(require_roles(Role.ADMIN, Role.AUTHOR, Role.READER)),
    db_service: APIDatabaseService = Depends(get_db_service)
):
    """Get all books."""
    try:
        books = await db_service.list_books()
        return BookListResponse(message="Books retrieved successfully", books=books)
    except Exception as e:
        logger.error("Failed to get books", user_id=current_user.id, error=str(e))
        raise InternalError()


@router.post(
    "/add",
    response_model=BookEnvelope,
    status_code=status.HTTP_201_CREATED,
    responses={**_AUTH_ERRORS, status.HTTP_400_BAD_REQUEST: {"model": ErrorResponse}},
    openapi_extra=json_body(BookCreate),
)
async def add_book(
    current_user: CurrentUser = Depends(require_roles(Role.ADMIN, Role.AUTHOR)),
    payload: Dict[str, Any] = Depends(validate_body(book_rules)),
    db_service: APIDatabaseService = Depends(get_db_service)
):
    """
    Add a book owned by the caller.

    - **title**, **genre**, **language**, **ratings**: non-empty strings
    - **coverPage**: http(s) URL of the cover image
    - **year**: integer between 1000 and the current year
    """
    try:
        book = await db_service.create_book(BookCreate(**payload), creator_id=current_user.id)
        return BookEnvelope(message="Book created successfully", book=book)
    except Exception as e:
        logger.error("Failed to create book", user_id=current_user.id, error=str(e))
        raise InternalError()


@router.patch(
    "/edit/{book_id}",
    response_model=BookEnvelope,
    responses={
        **_AUTH_ERRORS,
        status.HTTP_400_BAD_REQUEST: {"model": ErrorResponse},
        status.HTTP_404_NOT_FOUND: {"model": ErrorResponse},
    },
    openapi_extra=json_body(BookUpdate),
)
async def edit_book(
    book_id: str,
    current_user: CurrentUser = Depends(require_roles(Role.ADMIN, Role.AUTHOR)),
    payload: Dict[str, Any] = Depends(validate_body(book_rules, partial=True)),
    db_service: APIDatabaseService = Depends(get_db_service)
):
    """
    Apply a partial update to a book.

    Only the supplied fields change. Any Admin or Author may edit any book.
    """
    try:
        if await db_service.get_book_by_id(book_id) is None:
            raise NotFoundError()

        changes = BookUpdate(**payload).model_dump(by_alias=True, exclude_unset=True)
        book = await db_service.update_book(book_id, changes)
        if book is None:
            # Deleted between the lookup and the update
            raise NotFoundError()

        logger.info("Book updated", book_id=book_id, user_id=current_user.id, fields=sorted(changes))
        return BookEnvelope(message="Book updated successfully", book=book)

    except HTTPException:
        raise
    except Exception as e:
        logger.error("Failed to update book", book_id=book_id, error=str(e))
        raise InternalError()


@router.delete("/delete/{book_id}", response_model=MessageResponse, responses=_AUTH_ERRORS)
async def delete_book(
    book_id: str,
    current_user: CurrentUser = Depends(require_roles(Role.ADMIN)),
    db_service: APIDatabaseService = Depends(get_db_service)
):
    """Delete a book. Deleting an id that does not exist also succeeds."""
    try:
        deleted = await db_service.delete_book(book_id)
    except Exception as e:
        logger.error("Failed to delete book", book_id=book_id, error=str(e))
        raise InternalError()

    if not deleted:
        logger.info("Delete matched no book", book_id=book_id, user_id=current_user.id)
    return MessageResponse(message="Book deleted successfully")
