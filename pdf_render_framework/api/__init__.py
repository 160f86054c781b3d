"""
API sub-package for the PDF Render Framework.

This package contains the FastAPI application, route definitions and
Pydantic request models.

No objects are exported directly from this `api` package level.
Modules like `api.main` or routers from `api.routes` should be imported
directly from their respective paths.
"""

__all__ = []
