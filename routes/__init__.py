"""
API route modules.

Each module defines routes for one area of the import pipeline.
"""

from routes.imports import router as imports_router
from routes.staging import router as staging_router
from routes.import_runs import router as import_runs_router

__all__ = [
    "imports_router",
    "staging_router",
    "import_runs_router",
]
