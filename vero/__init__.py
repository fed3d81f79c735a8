"""
Vero — certificate registry with an admin-controlled verification lifecycle.
"""

__version__ = "0.1.0"
