# src/chronoseal/__init__.py

"""
ChronoSeal Document Integrity Engine
Salted SHA-256 sealing and tamper verification for text and binary documents.
"""

__version__ = "0.1.0"
__author__ = "ChronoSeal Development Team"

# No direct exports from root; subpackages are accessed explicitly
# e.g., from chronoseal.core import IntegrityEngine
