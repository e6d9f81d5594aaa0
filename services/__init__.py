"""
Business logic services.

Each service handles one stage of the import pipeline.
"""

from services.catalog_service import CatalogService, get_catalog_service
from services.link_service import LinkService, get_link_service
from services.match_service import MatchService, get_match_service, read_name
from services.import_run_service import ImportRunService, get_import_run_service
from services.staging_service import StagingService, get_staging_service
from services.commit_service import CommitService, get_commit_service

__all__ = [
    "CatalogService",
    "get_catalog_service",
    "LinkService",
    "get_link_service",
    "MatchService",
    "get_match_service",
    "read_name",
    "ImportRunService",
    "get_import_run_service",
    "StagingService",
    "get_staging_service",
    "CommitService",
    "get_commit_service",
]
