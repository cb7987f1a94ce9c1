"""
Error types raised by the stamping engine.

Every error carries a human-readable :attr:`~StampingError.msg` and an
:class:`ErrorKind` that tells the caller at which stage the failure occurred.
"""

import enum

from pyhanko.config.errors import ConfigurationError

__all__ = [
    'ErrorKind',
    'StampingError',
    'StampingConfigurationError',
    'StampResourceError',
    'ImageDecodeError',
    'DocumentError',
    'SignatureSetupError',
    'StampingCancelled',
    'UnsupportedSeamSideError',
    'UnsupportedScopeError',
]


class ErrorKind(enum.Enum):
    CONFIGURATION = enum.auto()
    """
    Invalid or conflicting options. Reported before any file is touched.
    """

    RESOURCE = enum.auto()
    """
    A stamp image, certificate or input path could not be found or read.
    """

    DOCUMENT = enum.auto()
    """
    A document could not be read, unlocked or written.
    """

    SIGNING = enum.auto()
    """
    Signing key material could not be used.
    """

    CANCELLED = enum.auto()
    """
    The batch was cancelled at a checkpoint.
    """

    CONTRACT = enum.auto()
    """
    A caller passed a value outside of an API's contract.
    """


class StampingError(Exception):
    """Base class for all errors raised by :mod:`seamstamp`."""

    kind: ErrorKind = ErrorKind.DOCUMENT

    def __init__(self, msg: str):
        self.msg = msg
        super().__init__(msg)


class StampingConfigurationError(StampingError, ConfigurationError):
    """Signal invalid or conflicting stamping options."""

    kind = ErrorKind.CONFIGURATION


class StampResourceError(StampingError):
    """Signal a missing stamp image, certificate or input path."""

    kind = ErrorKind.RESOURCE


class ImageDecodeError(StampResourceError):
    """Signal a stamp image that cannot be decoded."""


class DocumentError(StampingError):
    """Signal a problem reading, unlocking or writing a document."""

    kind = ErrorKind.DOCUMENT


class SignatureSetupError(StampingError):
    """Signal a problem with the signing key material."""

    kind = ErrorKind.SIGNING


class StampingCancelled(StampingError):
    kind = ErrorKind.CANCELLED

    def __init__(self, msg: str = 'Stamping was cancelled.'):
        super().__init__(msg)


class UnsupportedSeamSideError(StampingError, ValueError):
    kind = ErrorKind.CONTRACT


class UnsupportedScopeError(StampingError, ValueError):
    kind = ErrorKind.CONTRACT
