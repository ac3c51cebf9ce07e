"""minio-statemap error code registry and exception taxonomy.

Every fatal condition is raised as a StatemapError subclass carrying an
ErrorCode. The CLI turns it into a structured message:
- Code: MINIO-STATEMAP-EXXX format
- Message: Human-readable description
- Next step: Actionable command or instruction
"""
from __future__ import annotations

import sys
from dataclasses import dataclass
from enum import Enum
from typing import Optional


class ErrorCode(Enum):
    """minio-statemap error codes."""

    # Configuration errors (E001-E099)
    E001 = "E001"  # Config file not found
    E002 = "E002"  # Config file is not valid YAML
    E003 = "E003"  # Invalid config value

    # Input errors (E200-E209)
    E200 = "E200"  # Input file cannot be read
    E201 = "E201"  # Trace record is not valid JSON
    E202 = "E202"  # Trace record failed schema validation
    E203 = "E203"  # Trace record timestamp invalid

    # Protocol errors (E210-E219)
    E210 = "E210"  # END without matching BEGIN
    E211 = "E211"  # BEGIN for a request that is already open
    E212 = "E212"  # Timestamps go backwards within an entity
    E213 = "E213"  # Flush before the entity's last event

    # Legend errors (E220-E229)
    E220 = "E220"  # Label registered after the legend was frozen

    # Output errors (E300-E399)
    E300 = "E300"  # Cannot write output


@dataclass
class ErrorReport:
    """Structured error with code, message, and next step."""

    code: ErrorCode
    message: str
    next_step: str
    details: Optional[str] = None

    def __str__(self) -> str:
        lines = [
            f"MINIO-STATEMAP-{self.code.value}: {self.message}",
        ]
        if self.details:
            lines.append(f"  Details: {self.details}")
        lines.append(f"  Next step: {self.next_step}")
        return "\n".join(lines)

    def print(self, file=None) -> None:
        """Print the error to stderr (or specified file)."""
        print(str(self), file=file or sys.stderr)


# (message_template, next_step)
ERROR_TEMPLATES: dict[ErrorCode, tuple[str, str]] = {
    ErrorCode.E001: (
        "Config file not found: {details}",
        "Check the --config path or MINIO_STATEMAP_CONFIG",
    ),
    ErrorCode.E002: (
        "Config file is not valid YAML: {details}",
        "Fix the YAML syntax (use spaces, not tabs)",
    ),
    ErrorCode.E003: (
        "Invalid config value: {details}",
        "See config.example.yaml for the accepted keys and values",
    ),
    ErrorCode.E200: (
        "Cannot read input file: {details}",
        "Check the --input-file path and permissions",
    ),
    ErrorCode.E201: (
        "Trace record is not valid JSON: {details}",
        "Capture the trace with 'mc admin trace --json'",
    ),
    ErrorCode.E202: (
        "Trace record is invalid: {details}",
        "Check the record against schemas/minio_trace.schema.json",
    ),
    ErrorCode.E203: (
        "Trace record timestamp is invalid: {details}",
        "Timestamps must be RFC 3339 (e.g. 2020-04-01T10:20:30.123456789Z)",
    ),
    ErrorCode.E210: (
        "Request ended without a matching begin: {details}",
        "Re-capture the trace from an earlier point or use --lenient-orphans",
    ),
    ErrorCode.E211: (
        "Request began twice without ending: {details}",
        "Request ids must be unique among a host's open requests",
    ),
    ErrorCode.E212: (
        "Timestamps went backwards: {details}",
        "Events must be serialized by capture time before conversion",
    ),
    ErrorCode.E213: (
        "Stream end precedes the last event: {details}",
        "Pass an end timestamp at or after the last event",
    ),
    ErrorCode.E220: (
        "Legend is frozen, cannot add label: {details}",
        "Register every label before the conversion finishes",
    ),
    ErrorCode.E300: (
        "Cannot write output: {details}",
        "Check that stdout is writable",
    ),
}


class StatemapError(Exception):
    """Base class for every fatal conversion error."""

    code: ErrorCode = ErrorCode.E003

    def __init__(self, message: str, code: Optional[ErrorCode] = None) -> None:
        super().__init__(message)
        if code is not None:
            self.code = code

    def report(self) -> ErrorReport:
        return make_error(self.code, str(self))


class ConfigError(StatemapError):
    """Configuration file or value is unusable."""

    code = ErrorCode.E003


class ParseError(StatemapError):
    """A raw record cannot be decoded into a TraceEvent."""

    code = ErrorCode.E202

    def __init__(
        self,
        message: str,
        code: Optional[ErrorCode] = None,
        record_index: Optional[int] = None,
    ) -> None:
        if record_index is not None:
            message = f"record {record_index}: {message}"
        super().__init__(message, code)
        self.record_index = record_index


class ProtocolError(StatemapError):
    """The event stream violates BEGIN/END pairing or ordering."""

    code = ErrorCode.E210

    def __init__(
        self,
        message: str,
        code: Optional[ErrorCode] = None,
        *,
        entity_id: Optional[str] = None,
        timestamp: Optional[int] = None,
        record_index: Optional[int] = None,
    ) -> None:
        context = []
        if entity_id is not None:
            context.append(f"entity={entity_id}")
        if timestamp is not None:
            context.append(f"timestamp={timestamp}")
        if record_index is not None:
            context.append(f"record={record_index}")
        if context:
            message = f"{message} ({', '.join(context)})"
        super().__init__(message, code)
        self.entity_id = entity_id
        self.timestamp = timestamp
        self.record_index = record_index


class LegendFrozenError(StatemapError):
    """A label was registered after the legend was finalized."""

    code = ErrorCode.E220


def make_error(code: ErrorCode, details: Optional[str] = None) -> ErrorReport:
    """Create an ErrorReport from a code with optional details.

    Args:
        code: The error code
        details: Optional details to include in the message

    Returns:
        ErrorReport instance ready to print
    """
    template = ERROR_TEMPLATES.get(code, ("Unknown error", "Re-run with --verbose"))
    message_template, next_step = template

    if details and "{details}" in message_template:
        message = message_template.format(details=details)
    elif details:
        message = f"{message_template}: {details}"
    else:
        message = message_template.replace(": {details}", "")

    return ErrorReport(
        code=code,
        message=message,
        next_step=next_step,
        details=details if "{details}" not in message_template else None,
    )


def error_exit(code: ErrorCode, details: Optional[str] = None, exit_code: int = 1) -> None:
    """Print an error and exit with the specified code."""
    err = make_error(code, details)
    err.print()
    sys.exit(exit_code)


# Verbose mode flag (set by CLI)
_verbose_mode: bool = False


def set_verbose(verbose: bool) -> None:
    """Set verbose mode for error output."""
    global _verbose_mode
    _verbose_mode = verbose


def is_verbose() -> bool:
    """Check if verbose mode is enabled."""
    return _verbose_mode


def handle_exception(exc: Exception, code: Optional[ErrorCode] = None) -> None:
    """Print a formatted error for exc.

    StatemapError instances use their own code; anything else needs one.
    In verbose mode the full traceback follows.
    """
    import traceback

    if isinstance(exc, StatemapError):
        err = exc.report()
    else:
        err = make_error(code or ErrorCode.E003, str(exc))
    err.print()

    if _verbose_mode:
        print("\n--- Full Traceback ---", file=sys.stderr)
        traceback.print_exception(type(exc), exc, exc.__traceback__)
