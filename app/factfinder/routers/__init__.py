"""
Routers package for FastAPI endpoints.

Organized by domain:
- upload: PDF upload into storage and extraction records
- extractions: Extraction record retrieval
- quotes: Payload validation and webhook submission
"""

from . import extractions, quotes, upload

__all__ = ["extractions", "quotes", "upload"]
