"""
Client for the CRM REST API.

Exposes the X2Client and a builder that wires stored settings into it.
"""

from .x2_client import X2Client, build_query
from .builder import build_client

__all__ = [
    "X2Client",
    "build_query",
    "build_client",
]
