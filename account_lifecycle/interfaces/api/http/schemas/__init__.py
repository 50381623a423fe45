"""
===============================================================================
CRC CARD — schemas/__init__.py
===============================================================================

Module:
    HTTP schemas (pydantic DTOs)

Rules:
    - Schemas never import infrastructure and never run use cases.
    - Types and input validation only.
===============================================================================
"""

__all__ = []
