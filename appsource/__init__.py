"""
App Source

Catalog item synthesis and verification for third-party app catalogs.
"""

__version__ = "1.0.0"
