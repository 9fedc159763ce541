"""
Saved Search Interfaces Layer
=============================
"""

from src.saved_searches.interfaces.controllers import saved_search_router

__all__ = ["saved_search_router"]
