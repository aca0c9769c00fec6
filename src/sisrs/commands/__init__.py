"""
Command package.

Submodules are imported explicitly by sisrs.cli to avoid circular imports.
Do NOT import submodules here.
"""
__all__ = [
    "pipeline",
    "doctor",
]
