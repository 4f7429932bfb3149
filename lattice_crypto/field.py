# Copyright (c) 2026 Signer — MIT License

"""Arithmetic in Z_q, the integers modulo a prime q.

Elements are plain Python ints held in canonical range [0, q).  Every
operation takes canonical operands and returns a canonical result.

Products are reduced with Barrett reduction instead of Python's ``%``:
the quotient is approximated by a fixed-point multiply and shift, then a
single branchless conditional subtraction lands the remainder in [0, q).
With shift = 2 * bitlen(q) the approximation is off by at most one for any
product of two canonical operands, so one correction step suffices.
"""

from .errors import DomainError, InvalidParameter

# Branchless masks below rely on sign propagation through ``>> 63``;
# keeping q under 2^31 keeps every intermediate well inside that range.
_MAX_MODULUS = 1 << 31


def _is_prime(n):
    """Trial division; moduli are below 2^31 so this stays cheap."""
    if n < 2:
        return False
    if n % 2 == 0:
        return n == 2
    i = 3
    while i * i <= n:
        if n % i == 0:
            return False
        i += 2
    return True


class ModularField:
    """The prime field Z_q."""

    __slots__ = ("q", "barrett_shift", "barrett_mult")

    def __init__(self, q):
        if not isinstance(q, int) or q < 3 or q >= _MAX_MODULUS:
            raise InvalidParameter(
                f"modulus must be an int in [3, 2^31), got {q!r}"
            )
        if not _is_prime(q):
            raise InvalidParameter(f"modulus {q} is not prime")
        self.q = q
        self.barrett_shift = 2 * q.bit_length()
        self.barrett_mult = (1 << self.barrett_shift) // q

    def __repr__(self):
        return f"ModularField(q={self.q})"

    def __eq__(self, other):
        return isinstance(other, ModularField) and other.q == self.q

    def __hash__(self):
        return hash(("ModularField", self.q))

    # ── Canonical form ────────────────────────────────────────────

    def reduce(self, x):
        """Map any integer (including negatives) to [0, q)."""
        return x % self.q

    def is_canonical(self, x):
        return isinstance(x, int) and 0 <= x < self.q

    def centered(self, x):
        """Representative of x in (-(q-1)/2, (q-1)/2]."""
        q = self.q
        return x - q if x > (q >> 1) else x

    # ── Ring operations ───────────────────────────────────────────

    def barrett(self, x):
        """Barrett reduction: x mod q for x in [0, q^2). Branchless."""
        q = self.q
        t = (x * self.barrett_mult) >> self.barrett_shift
        r = x - t * q
        mask = 1 + ((r - q) >> 63)
        return r - mask * q

    def add(self, a, b):
        """(a + b) mod q. Branchless."""
        q = self.q
        r = a + b
        return r - q * (1 + ((r - q) >> 63))

    def sub(self, a, b):
        """(a - b) mod q. Branchless."""
        r = a - b
        return r - (r >> 63) * self.q

    def neg(self, a):
        return self.sub(0, a)

    def mul(self, a, b):
        return self.barrett(a * b)

    def pow(self, a, e):
        return pow(a, e, self.q)

    def inv(self, a):
        """Multiplicative inverse via Fermat's little theorem (q is prime)."""
        if a % self.q == 0:
            raise DomainError("zero has no multiplicative inverse")
        return self.pow(a, self.q - 2)
