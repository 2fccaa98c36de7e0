"""
Utility helpers for the Tubely backend.

- logger: JSON/text logging setup and context adapters
- file_validator: content-type checks and asset path generation
"""
