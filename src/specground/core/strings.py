"""
String utility functions for specground.
"""

from __future__ import annotations

import re


def to_snake_case(name: str) -> str:
    """
    Convert a CamelCase name to snake_case.

    Examples:
        >>> to_snake_case("ShoppingCart")
        'shopping_cart'
        >>> to_snake_case("VATClearance")
        'vat_clearance'
    """
    name = re.sub(r"([A-Z]+)([A-Z][a-z])", r"\1_\2", name)
    name = re.sub(r"([a-z\d])([A-Z])", r"\1_\2", name)
    return re.sub(r"\W+", "_", name).lower()

