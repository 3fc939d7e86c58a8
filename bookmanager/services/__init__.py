"""Book Manager - Services Package

This package contains service modules for external integrations:
- Open Library Books API lookup
- HTTP client abstraction
"""
