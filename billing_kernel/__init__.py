"""
Billing Kernel

The shared foundation for the billing ledger core:
- Typed exceptions with machine-readable codes
- Structured JSON logging
- Settings loaded from YAML and the environment
- Kilogram/bag unit conversion
- Immutable domain DTOs for parties, items, documents and transactions
- SQLAlchemy persistence for the processed-transaction record
"""

__version__ = "0.1.0"
