"""Test fixtures for db-export tests."""
