"""
ETL Workers Infrastructure Module

Generic worker infrastructure for the extraction stage:
- api_extractor.py: Raw-to-tool extraction driver (one transaction per raw row)
- bulk_operations.py: Bulk database operations utility
"""
