"""
Infrastructure Package
======================

Provides abstraction layers for external dependencies following the Dependency Inversion Principle.

Modules:
    - events: Domain event bus (Redis pub/sub, in-memory)
    - container: Service locator wiring marketplace services to their dependencies

This package enables:
    - Easy testing with the in-memory event bus
    - Switching between providers without code changes
    - Loose coupling between business logic and infrastructure
"""
