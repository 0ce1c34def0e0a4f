"""
Site directory collaborators.

These components answer the site-level questions the resolver asks: where
uploads live, where the plugins root is, and which theme holds a given file.
"""

from datetime import datetime
from pathlib import Path
from typing import Callable, Optional, Union
import logging

from ..models.config import SiteConfig


logger = logging.getLogger(__name__)


class DirectoryResolutionError(Exception):
    """Raised when a base directory cannot be determined."""
    pass


class UploadDirectory:
    """
    Resolves the uploads directory of a site.

    With year/month folders enabled the directory for the current month
    (``uploads/2024/05``) is returned, matching where new uploads are stored.
    """

    def __init__(self, config: SiteConfig, clock: Optional[Callable[[], datetime]] = None):
        """
        Initialize the uploads directory resolver.

        Args:
            config: Site configuration
            clock: Callable returning the current time, used for year/month folders
        """
        self.config = config
        self.clock = clock or datetime.now

    def resolve(self) -> Path:
        """
        Get the current uploads directory.

        Returns:
            Absolute path to the uploads directory

        Raises:
            DirectoryResolutionError: If the directory is missing and cannot be created,
                or the path exists but is not a directory
        """
        path = self.config.get_uploads_path()
        if self.config.uploads.year_month_folders:
            now = self.clock()
            path = path / f"{now.year:04d}" / f"{now.month:02d}"

        if path.is_dir():
            return path

        if path.exists():
            raise DirectoryResolutionError(f"Uploads path is not a directory: {path}")

        if not self.config.uploads.create_missing:
            raise DirectoryResolutionError(f"Uploads directory does not exist: {path}")

        try:
            path.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise DirectoryResolutionError(f"Unable to create uploads directory {path}: {e}") from e

        logger.info(f"Created uploads directory: {path}")
        return path


class ThemeLocator:
    """
    Locates files in the active theme, falling back to its parent theme.
    """

    def __init__(self, config: SiteConfig):
        self.config = config

    def search_paths(self) -> list:
        """Theme directories in lookup order."""
        paths = [self.config.get_stylesheet_path()]
        if self.config.theme.is_child_theme():
            paths.append(self.config.get_template_path())
        return paths

    def locate(self, relative_name: Union[str, Path]) -> str:
        """
        Find a file relative to the theme directories.

        Args:
            relative_name: File name, optionally prefixed with a sub-directory

        Returns:
            Absolute path of the first match, or an empty string if no theme has the file
        """
        relative_name = str(relative_name).lstrip('/')
        if not relative_name:
            return ''

        for theme_path in self.search_paths():
            candidate = theme_path / relative_name
            if candidate.exists():
                logger.debug(f"Located theme file: {candidate}")
                return str(candidate)

        logger.debug(f"Theme file not found in {len(self.search_paths())} theme(s): {relative_name}")
        return ''
