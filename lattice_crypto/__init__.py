# Copyright (c) 2026 Signer — MIT License

"""Lattice-based post-quantum primitives, in pure Python.

Arithmetic:
    ModularField    — Z_q with Barrett reduction and Fermat inversion.
    PolynomialRing  — Z_q[X]/(X^n + 1); Poly (coefficient) and NttPoly
                      (transform) elements, PolyVector, PolyMatrix.
    NttEngine       — forward/inverse NTT, complete or degree-2 incomplete.

Schemes:
    CpaScheme        — Module-LWE public-key encryption (Kyber-style).
    Kem              — Fujisaki-Okamoto KEM with implicit rejection.
    SignatureScheme  — Fiat-Shamir-with-aborts signatures (Dilithium-style).

Parameter sets:
    KYBER_TOY, KYBER_512, KYBER_768, KYBER_1024,
    DILITHIUM_2, DILITHIUM_3, DILITHIUM_5.

This is learning-oriented code: timing behaviour is best effort and the
byte formats are internal, not FIPS 203/204 wire formats.
"""

from .errors import (
    LatticeError, InvalidParameter, DomainError, MalformedInput,
    SignatureRejectionOverflow,
)
from .field import ModularField
from .ntt import NttEngine
from .poly import PolynomialRing, Poly, NttPoly, PolyVector, PolyMatrix, get_ring
from .params import (
    ParameterSet, PARAMETER_SETS, get_parameter_set,
    KYBER_TOY, KYBER_512, KYBER_768, KYBER_1024,
    DILITHIUM_2, DILITHIUM_3, DILITHIUM_5,
)
from .cpa import CpaScheme, CpaPublicKey, CpaSecretKey, CpaCiphertext
from .kem import Kem, KemSecretKey
from .dsa import SignatureScheme, DsaPublicKey, DsaSecretKey, Signature

__all__ = [
    # Errors
    "LatticeError", "InvalidParameter", "DomainError", "MalformedInput",
    "SignatureRejectionOverflow",
    # Arithmetic
    "ModularField", "NttEngine",
    "PolynomialRing", "Poly", "NttPoly", "PolyVector", "PolyMatrix", "get_ring",
    # Parameters
    "ParameterSet", "PARAMETER_SETS", "get_parameter_set",
    "KYBER_TOY", "KYBER_512", "KYBER_768", "KYBER_1024",
    "DILITHIUM_2", "DILITHIUM_3", "DILITHIUM_5",
    # Schemes
    "CpaScheme", "CpaPublicKey", "CpaSecretKey", "CpaCiphertext",
    "Kem", "KemSecretKey",
    "SignatureScheme", "DsaPublicKey", "DsaSecretKey", "Signature",
]
