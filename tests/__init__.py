"""
Test suite for the catalog import backend.

Run all tests: pytest
Run unit tests only: pytest tests/unit/
Run the end-to-end flow: pytest tests/unit/test_import_session_service.py -v
"""
