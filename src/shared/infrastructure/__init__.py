"""
Infrastructure Layer
=====================

Low-level technical concerns shared by every bounded context:
- Logging setup
- Domain event delivery (webhook / log publishers)
"""
