"""
Saved Search Domain Layer
=========================
"""

from src.saved_searches.domain.entities import SavedSearch

__all__ = ["SavedSearch"]
