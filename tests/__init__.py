"""
Tests Package - Unit Tests

Test structure:
- tests/unit/ - Fast, isolated unit tests (no network, no Redis)
- tests/fixtures/ - Shared factories and a scripted fake Shiftboard client
- tests/conftest.py - Pytest configuration
"""
