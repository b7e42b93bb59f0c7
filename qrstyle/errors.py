"""Error types raised by qrstyle."""

from dataclasses import dataclass


class QRStyleError(Exception):
    """Base class for all qrstyle errors."""


@dataclass(frozen=True)
class ConfigIssue:
    """A single problem found while validating a configuration."""
    field: str
    message: str

    def __str__(self) -> str:
        return f"{self.field}: {self.message}"


class ConfigError(QRStyleError, ValueError):
    """Invalid styling or border configuration.

    Carries every issue found in the validation pass, so callers can report
    them all at once instead of fixing one field per run.
    """

    def __init__(self, issues: list[ConfigIssue]):
        self.issues = list(issues)
        super().__init__("; ".join(str(i) for i in self.issues) or "invalid configuration")

    @property
    def fields(self) -> list[str]:
        return [i.field for i in self.issues]


class InvalidMatrixError(QRStyleError, ValueError):
    """The module matrix handed over by the encoder is malformed."""


class UnsupportedFormatError(QRStyleError, LookupError):
    """No encoder is registered for the requested output format."""

    def __init__(self, fmt: str, available: list[str]):
        self.format = fmt
        self.available = sorted(available)
        super().__init__(
            f"unsupported output format {fmt!r} (available: {', '.join(self.available)})"
        )
