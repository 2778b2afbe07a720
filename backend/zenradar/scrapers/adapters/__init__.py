"""Site-specific parser implementations.

Each parser module implements a class that inherits from GenericParser or
VariantPageParser and sets ``site_id`` to the site it handles.
"""

from .poppatea import PoppateaParser
from .horiishichimeien import HoriishichimeienParser

__all__ = [
    "PoppateaParser",
    "HoriishichimeienParser",
]
