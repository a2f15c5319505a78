"""API routers."""

from fastapi import APIRouter

from api.routes import auth, books

router = APIRouter()
router.include_router(auth.router, prefix="/auth", tags=["Auth"])
router.include_router(books.router, prefix="/book", tags=["Books"])
