"""
Domain models for registry search.
"""
