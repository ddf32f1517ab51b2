"""
Inventory Operations Package

This package contains the operational tooling around the inventory database:
configuration, schema initialization, bulk CSV import and the command line.

Modules:
- config: Environment configuration and settings
- schema: Idempotent table creation
- importer: Bulk product and stock import from CSV files
- cli: Command-line interface for operators
"""

__version__ = "0.1.0"
