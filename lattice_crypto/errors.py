# Copyright (c) 2026 Signer — MIT License

"""Error kinds raised by the lattice primitives.

Every error subclasses the built-in it replaces, so callers that already
catch ``ValueError`` (bad input) or ``RuntimeError`` (internal failure)
keep working.

Verification failure is deliberately absent: ``verify`` returns False for
forged or corrupted signatures instead of raising.
"""


class LatticeError(Exception):
    """Base class for all errors raised by this package."""


class InvalidParameter(LatticeError, ValueError):
    """Unsupported parameters or mismatched dimensions.

    Raised for a ring degree that is not a power of two, a modulus without
    the roots of unity the NTT needs, or vectors/matrices of the wrong shape.
    """


class DomainError(LatticeError, ValueError):
    """Operation applied outside its mathematical domain.

    Raised for the inverse of zero, and for a polynomial in the wrong
    representation (coefficient vs NTT) for the requested operation.
    """


class MalformedInput(LatticeError, ValueError):
    """Byte buffer of the wrong length or with a non-canonical encoding."""


class SignatureRejectionOverflow(LatticeError, RuntimeError):
    """The signing rejection loop exceeded its iteration cap.

    This is fatal: with sound parameters the expected number of attempts is
    in the single digits, so hitting the cap signals a parameter or
    implementation defect rather than bad luck.
    """
