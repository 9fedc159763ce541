"""
Saved Search Infrastructure Layer
=================================

SQLAlchemy model and repository for saved searches.
"""
