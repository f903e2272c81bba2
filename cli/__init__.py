"""CLI package for Reading Catalog"""
from .main import cli

__all__ = ['cli']
