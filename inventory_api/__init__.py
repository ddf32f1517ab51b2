"""
Inventory API Package

This package contains the database client and REST API components for the
inventory-tracking service (products, stock and employees).

Modules:
- db_client: SQLAlchemy-based database client with the CRUD queries
- errors: Error taxonomy shared by the client and the API
- models: Pydantic request and response models
- fastapi_server: REST API server
- utils: Utility functions and helpers
"""

__version__ = "0.1.0"
