"""
Module-level template tags.

These are thin wrappers around a shared FileExistenceResolver built from the
discovered configuration, for use directly from templates:

    check_file('pictures.zip', '<a href="%file_url%">Download %file_name%</a>')
"""

from functools import lru_cache
from typing import Optional, Union
import logging

from .config.parser import load_config
from .tools.resolver import DirectoryArgument, FileExistenceResolver


logger = logging.getLogger(__name__)


@lru_cache(maxsize=1)
def get_default_resolver() -> FileExistenceResolver:
    """Build the shared resolver from the discovered configuration."""
    result = load_config()
    for warning in result.warnings:
        logger.debug(f"Configuration warning: {warning}")
    return FileExistenceResolver(result.config)


def reset_default_resolver() -> None:
    """Forget the shared resolver so the configuration is loaded again."""
    get_default_resolver.cache_clear()


def check_file(filename: str,
               format: str = '',
               echo: bool = True,
               directory: DirectoryArgument = '',
               fallback: str = '',
               resolver: Optional[FileExistenceResolver] = None) -> Union[bool, str]:
    """Check for a file; see FileExistenceResolver.check_file."""
    resolver = resolver or get_default_resolver()
    return resolver.check_file(filename, format, echo, directory, fallback)


def check_plugin_file(filename: str,
                      format: str = '',
                      echo: bool = True,
                      directory: DirectoryArgument = '',
                      fallback: str = '',
                      resolver: Optional[FileExistenceResolver] = None) -> Union[bool, str]:
    """Check for a file in the plugins directory; see FileExistenceResolver.check_plugin_file."""
    resolver = resolver or get_default_resolver()
    return resolver.check_plugin_file(filename, format, echo, directory, fallback)


def check_theme_file(filename: str,
                     format: str = '',
                     echo: bool = True,
                     directory: DirectoryArgument = '',
                     fallback: str = '',
                     resolver: Optional[FileExistenceResolver] = None) -> Union[bool, str]:
    """Check for a file in the active or parent theme; see FileExistenceResolver.check_theme_file."""
    resolver = resolver or get_default_resolver()
    return resolver.check_theme_file(filename, format, echo, directory, fallback)
