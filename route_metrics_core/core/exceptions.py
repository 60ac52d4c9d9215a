"""
Common exceptions used throughout the log processor.

Parse errors in the log itself are data (see records.parse_errors), not
exceptions; everything raised from here aborts the current operation.
"""

class BaseAppException(Exception):
    """Base exception for all route-metrics specific errors."""
    pass

class ConfigurationError(BaseAppException):
    """Error related to processor configuration (options, templates, reporters)."""
    pass

class ValidationError(ConfigurationError):
    """A grouping template failed JSON schema validation."""
    pass

class RegistryError(BaseAppException):
    """A record reached the wrong accumulator, or an accumulator is missing.

    This is a wiring defect in the code, never a problem with the input log.
    """
    pass

class ReporterError(BaseAppException):
    """Error raised by a reporter while rendering a summary."""
    pass
