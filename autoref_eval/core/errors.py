from __future__ import annotations


class AutorefEvalError(Exception):
    """Base class for errors raised while grading an automatic referee."""


class LogFormatError(AutorefEvalError):
    """The capture log ends in the middle of a record."""


class CodecError(AutorefEvalError):
    """A logged payload could not be decoded."""


class NoReferenceEventsError(AutorefEvalError):
    """The human refbox stream produced no events to grade against."""


class CorrectionFileError(AutorefEvalError):
    """A correction file does not match the freshly computed evaluations."""
