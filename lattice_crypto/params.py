# Copyright (c) 2026 Signer — MIT License

"""Parameter sets.

A ``ParameterSet`` is an immutable bundle of every constant a scheme needs.
It is validated once at construction; the ring and its NTT tables are
derived from it and shared (see ``poly.get_ring``).

Encryption sets use (k, eta1, eta2, du, dv).  Signature sets use
(k, l, eta1 as eta, d, gamma1, gamma2, tau, omega).  Unused fields are 0.

Named sets (KEM, FIPS 203 Table 2 shapes):
    KYBER_TOY    q=3329 n=256 k=2 eta1=2 eta2=2 du=10 dv=4
    KYBER_512    k=2 eta1=3 eta2=2 du=10 dv=4
    KYBER_768    k=3 eta1=2 eta2=2 du=10 dv=4
    KYBER_1024   k=4 eta1=2 eta2=2 du=11 dv=5

Named sets (signature, FIPS 204 Table 1 shapes):
    DILITHIUM_2  q=8380417 k=4 l=4 eta=2 tau=39 gamma1=2^17 gamma2=(q-1)/88 omega=80
    DILITHIUM_3  k=6 l=5 eta=4 tau=49 gamma1=2^19 gamma2=(q-1)/32 omega=55
    DILITHIUM_5  k=8 l=7 eta=2 tau=60 gamma1=2^19 gamma2=(q-1)/32 omega=75
"""

from dataclasses import dataclass

from .errors import InvalidParameter
from .poly import get_ring

KEM = "kem"
DSA = "dsa"


@dataclass(frozen=True)
class ParameterSet:
    """Immutable scheme configuration."""
    label: str
    kind: str          # KEM or DSA
    q: int             # Prime modulus
    n: int             # Ring degree (power of 2)
    k: int             # Module rank / rows of A
    eta1: int          # CBD parameter for secrets (eta for signatures)
    l: int = 0         # Columns of A (signatures)
    eta2: int = 0      # CBD parameter for encryption noise
    du: int = 0        # Compression bits for u
    dv: int = 0        # Compression bits for v
    d: int = 0         # Bits dropped from t
    gamma1: int = 0    # Masking range
    gamma2: int = 0    # Decomposition divisor
    tau: int = 0       # Challenge weight
    omega: int = 0     # Max number of 1s in hint
    c_tilde_bytes: int = 32  # Challenge seed bytes

    def __post_init__(self):
        if self.kind not in (KEM, DSA):
            raise InvalidParameter(f"unknown scheme kind {self.kind!r}")
        # Validates n (power of two) and q (prime with the needed roots).
        get_ring(self.q, self.n)
        if self.k < 1 or self.eta1 < 1:
            raise InvalidParameter("k and eta1 must be positive")
        if self.n % 8:
            raise InvalidParameter("ring degree must be a multiple of 8")
        bits_q = self.q.bit_length()
        if self.kind == KEM:
            if self.eta2 < 1:
                raise InvalidParameter("eta2 must be positive")
            if not (0 < self.du < bits_q and 0 < self.dv < bits_q):
                raise InvalidParameter(f"du, dv must be in [1, {bits_q - 1}]")
            return
        if self.l < 1:
            raise InvalidParameter("l must be positive")
        if not 0 < self.d < bits_q - 1:
            raise InvalidParameter(f"d must be in [1, {bits_q - 2}]")
        if self.gamma2 < 1 or (self.q - 1) % (2 * self.gamma2):
            raise InvalidParameter("2*gamma2 must divide q - 1")
        if not 0 < self.tau <= self.n:
            raise InvalidParameter(f"tau must be in [1, {self.n}]")
        if self.beta >= self.gamma2 or self.beta >= self.gamma1:
            raise InvalidParameter("beta = tau*eta must be below gamma1 and gamma2")
        if not 0 < self.omega <= min(255, self.k * self.n):
            raise InvalidParameter("omega must be in [1, 255]")
        if self.n > 256:
            # Hint positions are encoded one byte each.
            raise InvalidParameter("signature sets support n <= 256")

    @property
    def ring(self):
        return get_ring(self.q, self.n)

    @property
    def beta(self):
        """Rejection slack: max |c * s| for a tau-weight challenge."""
        return self.tau * self.eta1

    @property
    def message_bytes(self):
        """Bytes in a CPA plaintext (one bit per coefficient)."""
        return self.n // 8


KYBER_TOY = ParameterSet(label="kyber-toy", kind=KEM, q=3329, n=256, k=2,
                         eta1=2, eta2=2, du=10, dv=4)
KYBER_512 = ParameterSet(label="kyber-512", kind=KEM, q=3329, n=256, k=2,
                         eta1=3, eta2=2, du=10, dv=4)
KYBER_768 = ParameterSet(label="kyber-768", kind=KEM, q=3329, n=256, k=3,
                         eta1=2, eta2=2, du=10, dv=4)
KYBER_1024 = ParameterSet(label="kyber-1024", kind=KEM, q=3329, n=256, k=4,
                          eta1=2, eta2=2, du=11, dv=5)

_DQ = 8380417  # 2^23 - 2^13 + 1

DILITHIUM_2 = ParameterSet(label="dilithium-2", kind=DSA, q=_DQ, n=256, k=4, l=4,
                           eta1=2, d=13, gamma1=1 << 17, gamma2=(_DQ - 1) // 88,
                           tau=39, omega=80, c_tilde_bytes=32)
DILITHIUM_3 = ParameterSet(label="dilithium-3", kind=DSA, q=_DQ, n=256, k=6, l=5,
                           eta1=4, d=13, gamma1=1 << 19, gamma2=(_DQ - 1) // 32,
                           tau=49, omega=55, c_tilde_bytes=48)
DILITHIUM_5 = ParameterSet(label="dilithium-5", kind=DSA, q=_DQ, n=256, k=8, l=7,
                           eta1=2, d=13, gamma1=1 << 19, gamma2=(_DQ - 1) // 32,
                           tau=60, omega=75, c_tilde_bytes=64)

PARAMETER_SETS = {
    p.label: p
    for p in (KYBER_TOY, KYBER_512, KYBER_768, KYBER_1024,
              DILITHIUM_2, DILITHIUM_3, DILITHIUM_5)
}


def get_parameter_set(label):
    """Look up a named set by label (case-insensitive, '_' or '-')."""
    key = label.strip().lower().replace("_", "-")
    try:
        return PARAMETER_SETS[key]
    except KeyError:
        raise InvalidParameter(
            f"unknown parameter set {label!r}; choose from {sorted(PARAMETER_SETS)}"
        ) from None
