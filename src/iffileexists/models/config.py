"""
Configuration data models for If File Exists.

This module defines the site layout the template tags resolve files against:
the application root, the public URL, the uploads directory, the plugins root
and the active/parent theme pair.
"""

from typing import Dict, List, Optional, Any
from pathlib import Path
import os
import re
from pydantic import BaseModel, Field, field_validator, model_validator


class UploadsConfig(BaseModel):
    """
    Configuration for the uploads directory.

    Attributes:
        path: Uploads directory, relative to the site root unless absolute
        year_month_folders: Whether uploads live in YYYY/MM sub-folders
        create_missing: Whether a missing uploads directory is created on lookup
    """

    path: str = Field("wp-content/uploads", description="Uploads directory")
    year_month_folders: bool = Field(False, description="Whether uploads live in YYYY/MM sub-folders")
    create_missing: bool = Field(False, description="Whether a missing uploads directory is created")

    @field_validator('path')
    @classmethod
    def validate_path(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("Uploads path cannot be empty")
        return v.strip()

    def to_dict(self) -> Dict[str, Any]:
        return self.model_dump()


class ThemeConfig(BaseModel):
    """
    Configuration for the active theme.

    A child theme has a stylesheet directory that differs from its template
    (parent) directory. When template is not set the active theme is its own
    parent.

    Attributes:
        themes_dir: Directory holding all themes, relative to the site root unless absolute
        stylesheet: Directory name of the active theme
        template: Directory name of the parent theme
    """

    themes_dir: str = Field("wp-content/themes", description="Directory holding all themes")
    stylesheet: str = Field("default", min_length=1, description="Directory name of the active theme")
    template: Optional[str] = Field(None, description="Directory name of the parent theme")

    @field_validator('stylesheet', 'template')
    @classmethod
    def validate_theme_name(cls, v: Optional[str]) -> Optional[str]:
        """Theme names are single directory names."""
        if v is None:
            return v
        v = v.strip().strip('/')
        if not v:
            raise ValueError("Theme name cannot be empty")
        if '/' in v or v in ('.', '..'):
            raise ValueError(f"Invalid theme name '{v}'")
        return v

    def get_template(self) -> str:
        return self.template or self.stylesheet

    def is_child_theme(self) -> bool:
        """Check if the active theme inherits from a different parent theme."""
        return self.get_template() != self.stylesheet

    def to_dict(self) -> Dict[str, Any]:
        return self.model_dump()


class SiteConfig(BaseModel):
    """
    Site layout used to resolve file queries.

    Attributes:
        root: Application root directory; relative paths elsewhere resolve against it
        site_url: Public base URL of the site
        plugins_dir: Plugins root, relative to the site root unless absolute
        uploads: Uploads directory settings
        theme: Active theme settings
    """

    root: str = Field(default_factory=lambda: str(Path.cwd()), description="Application root directory")
    site_url: str = Field("http://localhost", description="Public base URL of the site")
    plugins_dir: str = Field("wp-content/plugins", description="Plugins root")
    uploads: UploadsConfig = Field(default_factory=UploadsConfig, description="Uploads directory settings")
    theme: ThemeConfig = Field(default_factory=ThemeConfig, description="Active theme settings")

    @field_validator('root')
    @classmethod
    def validate_root(cls, v: str) -> str:
        """Expand and normalize the application root, keeping symlinks in place."""
        if not v or not v.strip():
            raise ValueError("Site root cannot be empty")
        return os.path.abspath(Path(v.strip()).expanduser())

    @field_validator('site_url')
    @classmethod
    def validate_site_url(cls, v: str) -> str:
        """Require an absolute http(s) URL without trailing slash."""
        v = v.strip()
        if not re.match(r'^https?://[^/\s]+', v, re.IGNORECASE):
            raise ValueError(f"Site URL must be an absolute http(s) URL: '{v}'")
        return v.rstrip('/')

    @field_validator('plugins_dir')
    @classmethod
    def validate_plugins_dir(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("Plugins directory cannot be empty")
        return v.strip()

    @model_validator(mode='before')
    @classmethod
    def drop_empty_sections(cls, data: Any) -> Any:
        """Treat empty YAML sections (None) as missing."""
        if isinstance(data, dict):
            return {key: value for key, value in data.items() if value is not None}
        return data

    def resolve_path(self, path: str) -> Path:
        """
        Resolve a configured path against the site root.

        Args:
            path: Absolute path, or a path relative to the site root

        Returns:
            Absolute path
        """
        candidate = Path(path).expanduser()
        if candidate.is_absolute():
            return candidate
        return Path(self.root) / candidate

    def get_root_path(self) -> Path:
        return Path(self.root)

    def get_plugins_path(self) -> Path:
        return self.resolve_path(self.plugins_dir)

    def get_uploads_path(self) -> Path:
        """Get the uploads base directory (without year/month sub-folders)."""
        return self.resolve_path(self.uploads.path)

    def get_themes_path(self) -> Path:
        return self.resolve_path(self.theme.themes_dir)

    def get_stylesheet_path(self) -> Path:
        """Get the directory of the active theme."""
        return self.get_themes_path() / self.theme.stylesheet

    def get_template_path(self) -> Path:
        """Get the directory of the parent theme (the active theme if it has no parent)."""
        return self.get_themes_path() / self.theme.get_template()

    def relative_to_root(self, path: str) -> str:
        """
        Express a path relative to the site root, using forward slashes.

        The root matches either as configured or with its symlinks resolved.
        Paths outside the root are returned without their leading slash.
        """
        for root in (self.root, os.path.realpath(self.root)):
            try:
                relative = Path(path).relative_to(root).as_posix()
            except ValueError:
                continue
            return '' if relative == '.' else relative
        return Path(path).as_posix().lstrip('/')

    def url_for(self, directory: str, basename: str) -> str:
        """Build the public URL of a file from its directory and name."""
        parts = [self.site_url]
        relative = self.relative_to_root(directory)
        if relative:
            parts.append(relative)
        parts.append(basename)
        return '/'.join(parts)

    def validate_configuration(self) -> List[str]:
        """
        Validate configuration and return non-fatal warnings.

        Returns:
            List of warning messages
        """
        warnings = []

        if not self.get_root_path().is_dir():
            warnings.append(f"Site root does not exist: {self.root}")

        if not self.get_plugins_path().is_dir():
            warnings.append(f"Plugins directory does not exist: {self.get_plugins_path()}")

        uploads_path = self.get_uploads_path()
        if not uploads_path.is_dir() and not self.uploads.create_missing:
            warnings.append(f"Uploads directory does not exist: {uploads_path}")

        if not self.get_stylesheet_path().is_dir():
            warnings.append(f"Active theme directory does not exist: {self.get_stylesheet_path()}")

        if self.theme.is_child_theme() and not self.get_template_path().is_dir():
            warnings.append(f"Parent theme directory does not exist: {self.get_template_path()}")

        return warnings

    def to_dict(self) -> Dict[str, Any]:
        """Convert configuration to dictionary representation."""
        data = self.model_dump()
        data['uploads'] = self.uploads.to_dict()
        data['theme'] = self.theme.to_dict()
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'SiteConfig':
        """Create configuration from dictionary representation."""
        return cls.model_validate(data)

    def __str__(self) -> str:
        parts = [f"Root: {self.root}"]
        parts.append(f"URL: {self.site_url}")
        parts.append(f"Theme: {self.theme.stylesheet}")
        if self.theme.is_child_theme():
            parts.append(f"Parent theme: {self.theme.get_template()}")
        return " | ".join(parts)


def validate_config_dict(config_data: Dict[str, Any]) -> Dict[str, Any]:
    """
    Validate a configuration dictionary using Pydantic.

    Args:
        config_data: Dictionary containing configuration data

    Returns:
        Normalized configuration dictionary

    Raises:
        ValueError: If configuration is invalid
    """
    known_sections = {'root', 'site_url', 'plugins_dir', 'uploads', 'theme'}
    unknown = sorted(set(config_data) - known_sections)
    if unknown:
        raise ValueError(f"Unknown configuration keys: {', '.join(unknown)}")

    for section in ('uploads', 'theme'):
        value = config_data.get(section)
        if value is not None and not isinstance(value, dict):
            raise ValueError(f"Configuration section '{section}' must be a mapping, got {type(value).__name__}")

    try:
        return SiteConfig.model_validate(config_data).to_dict()
    except Exception as e:
        raise ValueError(f"Configuration validation failed: {e}") from e
