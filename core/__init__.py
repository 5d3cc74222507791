"""
Core Import Engine Components.

Structure:
    models/: Pure data structures (no business logic)
    logic/: State transitions and geometry comparison
    schema/: Database DDL generation and deployment
    errors.py: Error codes and HTTP mapping
    utils.py: Identifier generation
"""

from . import models
from . import logic

__all__ = [
    'models',
    'logic',
]
