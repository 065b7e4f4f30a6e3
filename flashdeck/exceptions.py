from pathlib import Path
from typing import Optional, Union


class DatabaseError(Exception):
    """Base exception for storage-related errors."""

    def __init__(
        self, message: str, original_exception: Optional[Exception] = None
    ):
        super().__init__(message)
        self.original_exception = original_exception


class DatabaseConnectionError(DatabaseError):
    """Raised for errors connecting to the database."""

    pass


class SchemaInitializationError(DatabaseError):
    """Raised for errors during schema setup."""

    pass


class StorageReadError(DatabaseError):
    """Raised when a stored value cannot be read back."""

    pass


class StorageWriteError(DatabaseError):
    """Raised when a value cannot be written to the key-value store."""

    pass


class MarshallingError(DatabaseError):
    """Indicates an error during data conversion between application models
    and the persisted JSON format."""

    pass


class SeedFileError(Exception):
    """Raised when a seed deck file cannot be loaded."""

    def __init__(self, file_path: Union[str, Path], message: str):
        self.file_path = Path(file_path)
        self.message = message
        super().__init__(f"{self.file_path}: {message}")
