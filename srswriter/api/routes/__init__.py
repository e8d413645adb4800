"""
Routes package for the prompt API.

This package contains the FastAPI routers for:
- assembly: prompt assembly, template checks, specialists and result previews
"""

from .assembly import router as assembly_router

__all__ = ["assembly_router"]
