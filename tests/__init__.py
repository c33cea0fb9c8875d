"""
Tests Package

Unit tests for Team Atlas.

Structure:
    - conftest.py: Fake clock, temporary cache, record factories and fake adapters
    - test_<module>.py: One module per component
"""

__all__ = []
