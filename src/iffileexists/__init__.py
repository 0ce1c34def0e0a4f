"""
If File Exists - Core Package

Template tags that render an HTML snippet describing a file, but only if that
file exists in the site's uploads, plugin, theme or a given directory.
"""

__version__ = "0.1.0"
__author__ = "If File Exists Team"

from .template_tags import check_file, check_plugin_file, check_theme_file

__all__ = ['check_file', 'check_plugin_file', 'check_theme_file']
