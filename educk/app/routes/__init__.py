"""
FastAPI Routes.

Page routes (templates, catch-all) + API routes (renewable surplus)
"""

from . import pages, surplus

__all__ = ["pages", "surplus"]
