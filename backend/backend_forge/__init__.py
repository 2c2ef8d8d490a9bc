"""
Backend Forge - AI-powered backend generator
"""

__version__ = "1.0.0"
