"""
Error taxonomy for complex_config.

Filesystem "not found" conditions are always converted to one of these
before they reach a caller; every other unexpected error propagates as is.
"""
from typing import Optional


class ComplexConfigError(Exception):
    """Base class of all complex_config errors."""

    @classmethod
    def wrap(cls, err: BaseException) -> "ComplexConfigError":
        """Build an instance of this class carrying the message of ``err``.

        The caller is expected to ``raise cls.wrap(err) from err`` so the
        original traceback stays reachable through ``__cause__``.
        """
        return cls(str(err))


class AttributeMissing(ComplexConfigError, KeyError, AttributeError):
    """An attribute was read that was neither set nor derivable by a plugin."""

    def __str__(self) -> str:
        return str(self.args[0]) if self.args else ''


class ConfigurationFileMissing(ComplexConfigError):
    pass


class ConfigurationSyntaxError(ComplexConfigError):
    """Configuration text could not be parsed as YAML.

    ``line`` and ``column`` are zero-based like the marks PyYAML reports,
    and are ``None`` when the parser did not provide a position.
    """

    def __init__(
        self,
        message: str,
        pathname: Optional[str] = None,
        line: Optional[int] = None,
        column: Optional[int] = None,
    ):
        super().__init__(message)
        self.pathname = pathname
        self.line = line
        self.column = column

    @classmethod
    def wrap(cls, err: BaseException, pathname: Optional[str] = None) -> "ConfigurationSyntaxError":
        mark = getattr(err, 'problem_mark', None)
        line = getattr(mark, 'line', None)
        column = getattr(mark, 'column', None)
        return cls(str(err), pathname=pathname, line=line, column=column)


class SettingsFrozen(ComplexConfigError, TypeError):
    """Mutation was attempted on a frozen settings node."""


class EncryptionError(ComplexConfigError):
    pass


class EncryptionKeyInvalid(EncryptionError):
    pass


class EncryptionKeyMissing(EncryptionError):
    pass


class DecryptionFailed(EncryptionError):
    pass
