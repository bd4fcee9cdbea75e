"""Library API - Services Package

This package contains the request-pipeline services used by the listing
endpoints:
- Property mapping (public sort names to storage columns)
- Type helper (field-selection validation)
- Data shaping (projecting transfer objects to requested fields)
"""
