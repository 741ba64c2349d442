"""
Inkwell core REST API for publishing markdown articles
"""

__version__ = "0.1.0"
