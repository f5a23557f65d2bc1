"""
Custom exception types for Z3D.

The engines never raise on bad numbers; they degrade to empty results.
These exceptions cover the outer edges only: configuration files and
input files handed to the CLI or API.  Every exception carries a
machine-readable code so callers can handle failures programmatically.
"""


class Z3DError(Exception):
    """Base exception for all Z3D errors."""

    def __init__(self, message: str, code: str = "Z3D_ERROR"):
        self.code = code
        super().__init__(message)


class ConfigurationError(Z3DError):
    """Raised when a config file cannot be read or does not validate."""

    def __init__(self, message: str, path: str = ""):
        self.path = path
        super().__init__(message, code="CONFIGURATION_ERROR")


class InputFileError(Z3DError):
    """Raised when a channel or state file cannot be loaded."""

    def __init__(self, message: str, path: str = ""):
        self.path = path
        super().__init__(message, code="INPUT_FILE_ERROR")
