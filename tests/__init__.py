"""
Test suite for Community Needs Hub.

Run all tests: pytest
Run unit tests only: pytest tests/unit/
Run specific file: pytest tests/unit/test_urgency_service.py -v
"""
