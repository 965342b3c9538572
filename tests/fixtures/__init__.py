"""Test fixtures for the SMS sync service.

This package provides reusable test fixtures:
- messages: Message records, threads, stores and a recording transport
- api: TestClient and a fresh reconciler for API tests
"""
