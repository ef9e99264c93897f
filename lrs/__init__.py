"""
LRS Statement Store - storage and query core for xAPI statements

An append-only statement log: accepted statements are immutable, voiding
is the only retraction, and reference chains are flattened at insert time
so related-statement queries stay single-pass.
"""

__version__ = "0.1.0"
__all__ = ["__version__"]
