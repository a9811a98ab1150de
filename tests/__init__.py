"""
Tests Package - Unit Tests

Test structure:
- tests/unit/ - Fast, isolated unit tests (no SQL Server required)
- tests/conftest.py - Shared pytest fixtures, including an in-memory catalog

Run:
    pytest
"""
