"""
Shared helpers for normalizing raw row values.
"""
