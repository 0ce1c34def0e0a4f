"""
File existence resolver for If File Exists.

This module implements the template tags: resolve a file query to an absolute
path, check whether the file is there, and either report a boolean or render a
format string describing the file.
"""

import os
import sys
from pathlib import Path
from typing import Callable, Optional, TextIO, Tuple, Union
import logging

from ..models.config import SiteConfig
from ..models.file_query import Directory, DirectoryMode, FileQuery, ResolvedFile
from .placeholders import build_placeholder_values, find_placeholders, render_format
from .sanitizer import sanitize_markup
from .site import DirectoryResolutionError, ThemeLocator, UploadDirectory


logger = logging.getLogger(__name__)

DirectoryArgument = Union[str, bool, Directory, None]


class FileExistenceResolver:
    """
    Checks for files in the uploads, plugin, theme or an explicit directory.

    A check never raises for a missing file or an unresolvable uploads
    directory; both simply mean the file does not exist. Results are:

    - ``True``/``False`` when no format string is given (never echoed)
    - the rendered format string when the file exists
    - the fallback text (or an empty string) when it does not
    """

    def __init__(self,
                 config: SiteConfig,
                 uploads: Optional[UploadDirectory] = None,
                 theme_locator: Optional[ThemeLocator] = None,
                 sanitizer: Optional[Callable[[str], str]] = None,
                 output: Optional[TextIO] = None):
        """
        Initialize the resolver.

        Args:
            config: Site configuration (root, URL, plugins root)
            uploads: Uploads directory resolver
            theme_locator: Theme file locator
            sanitizer: Callable that strips unsafe markup from rendered text
            output: Stream echoed text is written to (standard output if None)
        """
        self.config = config
        self.uploads = uploads or UploadDirectory(config)
        self.theme_locator = theme_locator or ThemeLocator(config)
        self.sanitizer = sanitizer or sanitize_markup
        self.output = output

    def resolve(self, query: FileQuery) -> Optional[ResolvedFile]:
        """
        Resolve a query to an absolute file location without touching the file.

        Args:
            query: The file query

        Returns:
            ResolvedFile, or None if the filename is empty or the base directory
            cannot be determined
        """
        if not query.has_filename():
            return None

        directory = query.directory
        if directory.mode == DirectoryMode.FULL_PATH:
            path = Path(query.filename)
        else:
            if directory.mode == DirectoryMode.DEFAULT:
                try:
                    base = self.uploads.resolve()
                except DirectoryResolutionError as e:
                    logger.warning(f"Uploads directory unavailable, treating '{query.filename}' as missing: {e}")
                    return None
            else:
                base = self.config.resolve_path(directory.path)
            path = base / query.filename.lstrip('/')

        try:
            return ResolvedFile.from_path(path)
        except ValueError as e:
            logger.warning(f"Cannot resolve '{query.filename}': {e}")
            return None

    def evaluate(self, query: FileQuery) -> Tuple[bool, Union[bool, str]]:
        """
        Run a file query and report whether the file exists.

        The file is stat'ed once; the existence flag and the result both come
        from that single check.

        Args:
            query: The file query

        Returns:
            Tuple of the existence flag and the result of ``check``
        """
        resolved = self.resolve(query)
        stat_result = self._stat(resolved.full_path) if resolved else None
        exists = stat_result is not None

        logger.debug(f"{query} -> {resolved.full_path if resolved else 'unresolved'} (exists: {exists})")

        if not query.has_format():
            return exists, exists

        if not exists:
            text = query.fallback
        elif find_placeholders(query.format):
            resolved = resolved.with_size(stat_result.st_size)
            url = self.config.url_for(resolved.directory, resolved.basename)
            text = render_format(query.format, build_placeholder_values(resolved, url))
        else:
            text = query.format

        text = self.sanitizer(text)

        if query.echo and text:
            stream = self.output or sys.stdout
            stream.write(text)

        return exists, text

    def check(self, query: FileQuery) -> Union[bool, str]:
        """
        Run a file query.

        Args:
            query: The file query

        Returns:
            Existence flag when the query has no format, otherwise the
            sanitized rendered or fallback text
        """
        return self.evaluate(query)[1]

    def file_query(self,
                   filename: str,
                   format: str = '',
                   echo: bool = True,
                   directory: DirectoryArgument = '',
                   fallback: str = '') -> FileQuery:
        """Build the query for a file in the uploads or a given directory."""
        return FileQuery(
            filename=filename,
            directory=directory,
            format=format,
            echo=echo,
            fallback=fallback,
        )

    def plugin_file_query(self,
                          filename: str,
                          format: str = '',
                          echo: bool = True,
                          directory: DirectoryArgument = '',
                          fallback: str = '') -> FileQuery:
        """
        Build the query for a file in the plugins directory.

        The directory argument is a sub-directory of the plugins root; when it
        is True the filename is a path relative to the plugins root.
        """
        plugins_path = self.config.get_plugins_path()
        directory = Directory.from_argument(directory)

        if directory.is_full_path():
            if filename:
                filename = str(plugins_path / filename.lstrip('/'))
        elif directory.is_default():
            directory = Directory.explicit(str(plugins_path))
        else:
            directory = Directory.explicit(str(plugins_path / directory.path.lstrip('/')))

        return self.file_query(filename, format, echo, directory, fallback)

    def theme_file_query(self,
                         filename: str,
                         format: str = '',
                         echo: bool = True,
                         directory: DirectoryArgument = '',
                         fallback: str = '') -> FileQuery:
        """
        Build the query for a file in the active theme, or in its parent theme.

        The directory argument is a sub-directory of the theme.
        """
        directory = Directory.from_argument(directory)

        located = ''
        if filename:
            relative_name = filename
            if directory.mode == DirectoryMode.EXPLICIT:
                relative_name = f"{directory.path.strip('/')}/{filename.lstrip('/')}"
            located = self.theme_locator.locate(relative_name)

        return self.file_query(located, format, echo, Directory.full_path(), fallback)

    def check_file(self,
                   filename: str,
                   format: str = '',
                   echo: bool = True,
                   directory: DirectoryArgument = '',
                   fallback: str = '') -> Union[bool, str]:
        """
        Check for a file and optionally render a snippet describing it.

        Args:
            filename: Name of the file, or its full path when directory is True
            format: Text to render when the file exists. Supports %file_directory%,
                %file_extension%, %file_name%, %file_path%, %file_size%,
                %file_size_bytes% and %file_url%. When empty a boolean is returned.
            echo: Whether rendered text is also written to the output stream
            directory: '' / None / False for the uploads directory, True if filename
                is a full path, otherwise a directory relative to the site root
            fallback: Text to render when the file does not exist

        Returns:
            Existence flag, or the rendered text
        """
        return self.check(self.file_query(filename, format, echo, directory, fallback))

    def check_plugin_file(self,
                          filename: str,
                          format: str = '',
                          echo: bool = True,
                          directory: DirectoryArgument = '',
                          fallback: str = '') -> Union[bool, str]:
        """Check for a file in the plugins directory; see plugin_file_query."""
        return self.check(self.plugin_file_query(filename, format, echo, directory, fallback))

    def check_theme_file(self,
                         filename: str,
                         format: str = '',
                         echo: bool = True,
                         directory: DirectoryArgument = '',
                         fallback: str = '') -> Union[bool, str]:
        """Check for a file in the active or parent theme; see theme_file_query."""
        return self.check(self.theme_file_query(filename, format, echo, directory, fallback))

    def _stat(self, path: str) -> Optional[os.stat_result]:
        """Stat a path; any failure means the file does not exist."""
        try:
            return os.stat(path)
        except (OSError, ValueError):
            return None


def create_resolver(config: Optional[SiteConfig] = None, **kwargs) -> FileExistenceResolver:
    """
    Create a resolver for a site configuration.

    Args:
        config: Site configuration; defaults rooted at the current directory if None
        **kwargs: Collaborators passed through to FileExistenceResolver

    Returns:
        Configured FileExistenceResolver
    """
    return FileExistenceResolver(config or SiteConfig(), **kwargs)
