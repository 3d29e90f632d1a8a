"""
Unit Tests

Unit tests run in isolation without external dependencies.
Redis is mocked; every other store is in memory.
"""
