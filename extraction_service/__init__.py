"""
Extraction Service.

Raw-to-tool extraction stage of the issue tracker ETL pipeline: streams staged
raw API payloads for one collection scope and fans them out into normalized
per-tool tables.
"""

__version__ = "1.0.0"
