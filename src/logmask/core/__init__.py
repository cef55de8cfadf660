"""
Core masking components.

This package contains:
- Properties file reader
- Masking rule model and rule store
- Masking engine
- Metrics collection
"""
