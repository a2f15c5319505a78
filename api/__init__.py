"""
FastAPI RESTful API for the Book Management System.

This package provides a REST API for:
- User registration and login with signed, time-limited tokens
- Role-based access (Admin, Author, Reader) to book operations
- Declarative validation of request bodies
- Book listing, creation, partial editing and deletion
"""
