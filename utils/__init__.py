"""
Utils package - Shared utility functions.
"""

from utils.logger import setup_logging, setup_logging_from_settings
from utils.settings import load_settings

__all__ = ['setup_logging', 'setup_logging_from_settings', 'load_settings']
