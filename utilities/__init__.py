"""
Shared utilities (logging) for the catalog API.
"""
