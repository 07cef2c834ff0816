# Course Marketplace Test Suite
"""
Test suite for the Course Marketplace API.

Unit tests cover pure helpers and storage backends, service tests use
mocked repositories, integration tests go through the HTTP API against a
temporary SQLite database.
"""
