"""
File query data models for If File Exists.

This module defines the transient structures built for every existence check:
the directory selector, the query itself, and the file it resolves to.
"""

from typing import Dict, Optional, Any, Union
from pathlib import Path
from enum import Enum
from pydantic import BaseModel, Field, field_validator, model_validator


class DirectoryMode(Enum):
    """How the base directory of a query is chosen."""
    DEFAULT = "default"
    FULL_PATH = "full_path"
    EXPLICIT = "explicit"


class Directory(BaseModel):
    """
    Tagged directory selector for a file query.

    Replaces the overloaded string-or-boolean directory argument of the
    template tags with an explicit variant.

    Attributes:
        mode: Which resolution policy applies
        path: Directory path, only set for EXPLICIT mode
    """

    model_config = {'frozen': True}

    mode: DirectoryMode = Field(DirectoryMode.DEFAULT, description="Resolution policy")
    path: Optional[str] = Field(None, description="Directory path for explicit mode")

    @field_validator('mode', mode='before')
    @classmethod
    def validate_mode(cls, v) -> DirectoryMode:
        """Validate and convert mode to enum."""
        if isinstance(v, str):
            try:
                return DirectoryMode(v)
            except ValueError:
                raise ValueError(f"Invalid directory mode: {v}")
        return v

    @model_validator(mode='after')
    def validate_path(self):
        """Explicit directories need a path, the other modes must not carry one."""
        if self.mode == DirectoryMode.EXPLICIT:
            if not self.path or not self.path.strip():
                raise ValueError("Explicit directory requires a non-empty path")
        elif self.path is not None:
            raise ValueError(f"Directory mode '{self.mode.value}' does not take a path")
        return self

    @classmethod
    def default(cls) -> 'Directory':
        return cls(mode=DirectoryMode.DEFAULT)

    @classmethod
    def full_path(cls) -> 'Directory':
        return cls(mode=DirectoryMode.FULL_PATH)

    @classmethod
    def explicit(cls, path: str) -> 'Directory':
        return cls(mode=DirectoryMode.EXPLICIT, path=path)

    @classmethod
    def from_argument(cls, value: Union[str, bool, 'Directory', None]) -> 'Directory':
        """
        Map a legacy directory argument onto a Directory.

        Args:
            value: None, '' or False for the uploads directory, True when the
                filename already holds the full path, or a directory path

        Returns:
            The matching Directory
        """
        if isinstance(value, Directory):
            return value
        if value is True:
            return cls.full_path()
        if value is None or value is False or value == '':
            return cls.default()
        if isinstance(value, (str, Path)):
            return cls.explicit(str(value))
        raise ValueError(f"Unsupported directory argument: {value!r}")

    def is_default(self) -> bool:
        return self.mode == DirectoryMode.DEFAULT

    def is_full_path(self) -> bool:
        return self.mode == DirectoryMode.FULL_PATH

    def __str__(self) -> str:
        if self.mode == DirectoryMode.EXPLICIT:
            return f"explicit:{self.path}"
        return self.mode.value


class FileQuery(BaseModel):
    """
    A single existence check request.

    Attributes:
        filename: Name of the file to check (or full path in FULL_PATH mode)
        directory: Where to look for the file
        format: Format string rendered when the file exists; empty for a boolean result
        echo: Whether the rendered text is written to the output stream
        fallback: Text rendered when the file does not exist
    """

    filename: str = Field("", description="Name of the file to check")
    directory: Directory = Field(default_factory=Directory.default, description="Where to look for the file")
    format: str = Field("", description="Format string rendered when the file exists")
    echo: bool = Field(True, description="Whether the rendered text is echoed")
    fallback: str = Field("", description="Text rendered when the file does not exist")

    @field_validator('directory', mode='before')
    @classmethod
    def validate_directory(cls, v) -> Directory:
        """Accept the legacy argument shapes for the directory."""
        if isinstance(v, dict):
            return v
        return Directory.from_argument(v)

    @field_validator('filename', 'format', 'fallback', mode='before')
    @classmethod
    def validate_text(cls, v) -> str:
        """Treat None as an empty string."""
        if v is None:
            return ''
        return v

    def has_filename(self) -> bool:
        return bool(self.filename)

    def has_format(self) -> bool:
        """Check if the query asks for rendered text rather than a boolean."""
        return bool(self.format)

    def to_dict(self) -> Dict[str, Any]:
        """Convert the query to a dictionary representation."""
        data = self.model_dump()
        data['directory'] = str(self.directory)
        return data

    def __str__(self) -> str:
        parts = [f"File: '{self.filename}'"]
        parts.append(f"Directory: {self.directory}")
        if self.has_format():
            parts.append(f"Format: '{self.format}'")
        return " | ".join(parts)


class ResolvedFile(BaseModel):
    """
    The absolute location a file query resolves to.

    Attributes:
        full_path: Directory joined with the basename
        directory: Parent directory of the file
        basename: File name including extension
        extension: Extension without the leading dot, empty if none
        size_bytes: Size of the file in bytes, None when it does not exist
    """

    full_path: str = Field(..., min_length=1, description="Absolute path to the file")
    directory: str = Field(..., description="Parent directory of the file")
    basename: str = Field(..., min_length=1, description="File name including extension")
    extension: str = Field("", description="Extension without the leading dot")
    size_bytes: Optional[int] = Field(None, ge=0, description="File size in bytes")

    @classmethod
    def from_path(cls, path: Union[str, Path], size_bytes: Optional[int] = None) -> 'ResolvedFile':
        """
        Build a ResolvedFile from a joined path.

        Args:
            path: Full path to the file
            size_bytes: Size of the file, if known

        Returns:
            ResolvedFile with directory and basename split from the path
        """
        path = Path(path)
        return cls(
            full_path=str(path),
            directory=str(path.parent),
            basename=path.name,
            extension=path.suffix[1:],
            size_bytes=size_bytes,
        )

    @model_validator(mode='after')
    def validate_full_path(self):
        """Keep full_path consistent with directory and basename."""
        expected = str(Path(self.directory) / self.basename)
        if str(Path(self.full_path)) != expected:
            raise ValueError(f"Full path '{self.full_path}' does not match '{expected}'")
        self.full_path = expected
        return self

    def exists(self) -> bool:
        """Whether the file was found when it was resolved."""
        return self.size_bytes is not None

    def with_size(self, size_bytes: int) -> 'ResolvedFile':
        return self.model_copy(update={'size_bytes': size_bytes})

    def to_dict(self) -> Dict[str, Any]:
        return self.model_dump()

    def __str__(self) -> str:
        if self.exists():
            return f"{self.full_path} ({self.size_bytes} bytes)"
        return f"{self.full_path} (missing)"
