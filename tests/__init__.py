"""
boardsync test suite.

This package contains:
- unit/: Unit tests (pure functions, in-memory fakes, temp SQLite files)
- integration/: Multi-client tests against the in-memory remote backend
"""
