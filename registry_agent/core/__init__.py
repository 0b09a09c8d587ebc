"""
Core infrastructure: configuration errors, model routing.
"""
