"""
Database models for the real estate listings backend.
"""

from realestate.models.document import DocumentRecord

__all__ = [
    "DocumentRecord",
]
