"""
Academy backend: YouTube playlist sync for the corporate training library.
"""

__version__ = "1.0.0"
