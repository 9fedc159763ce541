"""
Saved Searches Module
=====================

Named, optionally shared ticket filters that can be re-run on demand.
"""
