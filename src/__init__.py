"""
Auction Listing Ingestion - Core Package

Collects Korean court and public auction listings from crawled pages, the
Onbid API, and hand-filled templates, and loads them into a relational store.
"""

__version__ = "0.1.0"
