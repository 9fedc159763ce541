"""
Saved Search Application Layer
==============================
"""

from src.saved_searches.application.services import (
    ISavedSearchRepository,
    SavedSearchService,
)

__all__ = ["ISavedSearchRepository", "SavedSearchService"]
