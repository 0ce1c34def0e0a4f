"""
Data models for If File Exists.

This module contains the file query structures and the site configuration.
"""

from .config import SiteConfig
from .file_query import Directory, DirectoryMode, FileQuery, ResolvedFile

__all__ = ['SiteConfig', 'Directory', 'DirectoryMode', 'FileQuery', 'ResolvedFile']
