"""
Domain service modules for the MapChat sync layer.

Each module is self-contained with its own:
- interfaces.py: Protocol definitions for the module's public API
- models.py: Pydantic models for the module's entities
- service.py: Business logic implementation
- exceptions.py: The module's closed error set

Modules communicate through interfaces, not concrete implementations,
and share one document store passed in at construction.
"""
