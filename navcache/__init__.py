"""
navcache
Navigation-aware predictive page cache.
"""

__version__ = "0.1.0"
