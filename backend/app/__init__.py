"""
MeMantra Backend
================

REST API behind the MeMantra mobile app: mantras, likes, saved mantras
and user-owned collections.
"""

__version__ = "1.0.0"
