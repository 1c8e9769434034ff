"""
E-Commerce Operations Dashboard
Cross-source metrics backend for the operations dashboard.
"""

__version__ = "1.0.0"
