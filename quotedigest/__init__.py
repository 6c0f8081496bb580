"""
Quote Digest - random approved quotes and a weekly email digest.
"""

__version__ = "1.0.0"
