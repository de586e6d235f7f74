"""
Fact-Finder Intake Backend.

A FastAPI service that ingests insurance fact-finder PDFs, tracks their
extraction lifecycle and delivers reviewed quote payloads to an RPA webhook.
"""

__version__ = "1.0.0"
