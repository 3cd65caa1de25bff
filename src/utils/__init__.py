"""
Short Sileo Utility Modules

File helpers used by the persistence layer.
"""

from .atomic_write import atomic_write_text

__all__ = [
    "atomic_write_text",
]
