# Copyright (c) 2026 Signer — MIT License

"""Polynomial ring R_q = Z_q[X]/(X^n + 1) with domain-tagged elements.

Ring elements come in two types that share the same storage layout (a
tuple of n canonical ints plus the owning ring):

    Poly     — coefficient domain
    NttPoly  — NTT (transform) domain

They convert into one another only through ``PolynomialRing.ntt`` and
``PolynomialRing.intt``.  Mixing the two in +, -, * raises DomainError,
which rules out multiplying untransformed data as if it were pointwise
products (and vice versa).

Multiplication of two ``Poly`` values always goes forward NTT → pointwise
→ inverse NTT.  ``schoolbook_multiply`` exists only as a reference for
tests.

Vectors and matrices of ring elements (``PolyVector``, ``PolyMatrix``) are
immutable, single-domain and dimension-checked.
"""

import functools

from . import encoding
from .errors import DomainError, InvalidParameter, MalformedInput
from .ntt import NttEngine


@functools.lru_cache(maxsize=None)
def get_ring(q, n):
    """Shared, immutable ring (and NTT tables) for one (q, n) pair."""
    return PolynomialRing(q, n)


class PolynomialRing:
    """Z_q[X]/(X^n + 1) together with its NTT engine."""

    def __init__(self, q, n):
        self.engine = NttEngine(q, n)
        self.field = self.engine.field
        self.q = q
        self.n = n

    def __repr__(self):
        return f"PolynomialRing(q={self.q}, n={self.n})"

    def __eq__(self, other):
        return (isinstance(other, PolynomialRing)
                and other.q == self.q and other.n == self.n)

    def __hash__(self):
        return hash(("PolynomialRing", self.q, self.n))

    # ── Construction ──────────────────────────────────────────────

    def zero(self):
        return Poly(self, (0,) * self.n)

    def ntt_zero(self):
        return NttPoly(self, (0,) * self.n)

    def from_coeffs(self, coeffs):
        """Coefficient-domain element from ints (signed values are reduced)."""
        coeffs = list(coeffs)
        if len(coeffs) != self.n:
            raise InvalidParameter(f"expected {self.n} coefficients, got {len(coeffs)}")
        q = self.q
        return Poly(self, (c % q for c in coeffs))

    def ntt_from_coeffs(self, coeffs):
        """NTT-domain element from canonical ints (e.g. sampled or decoded)."""
        coeffs = list(coeffs)
        if len(coeffs) != self.n:
            raise InvalidParameter(f"expected {self.n} coefficients, got {len(coeffs)}")
        q = self.q
        return NttPoly(self, (c % q for c in coeffs))

    # ── Domain conversion ─────────────────────────────────────────

    def ntt(self, p):
        """Forward transform: Poly -> NttPoly."""
        if not isinstance(p, Poly):
            raise DomainError(f"forward NTT needs a coefficient-domain Poly, got {type(p).__name__}")
        self._check_member(p)
        return NttPoly(self, self.engine.forward(p.coeffs))

    def intt(self, p):
        """Inverse transform: NttPoly -> Poly."""
        if not isinstance(p, NttPoly):
            raise DomainError(f"inverse NTT needs an NttPoly, got {type(p).__name__}")
        self._check_member(p)
        return Poly(self, self.engine.inverse(p.coeffs))

    def _check_member(self, p):
        if p.ring != self:
            raise InvalidParameter(f"{p.ring!r} element used with {self!r}")

    # ── Multiplication ────────────────────────────────────────────

    def multiply(self, a, b):
        """a * b for coefficient-domain a, b, via the NTT."""
        return self.intt(self.ntt(a) * self.ntt(b))

    def schoolbook_multiply(self, a, b):
        """Negacyclic O(n^2) product.  Reference only; the schemes never call it."""
        if not (isinstance(a, Poly) and isinstance(b, Poly)):
            raise DomainError("schoolbook multiplication needs coefficient-domain inputs")
        self._check_member(a)
        self._check_member(b)
        n = self.n
        q = self.q
        acc = [0] * n
        for i, ai in enumerate(a.coeffs):
            if not ai:
                continue
            for j, bj in enumerate(b.coeffs):
                k = i + j
                if k < n:
                    acc[k] += ai * bj
                else:
                    # X^n = -1
                    acc[k - n] -= ai * bj
        return Poly(self, (c % q for c in acc))

    # ── Serialisation ─────────────────────────────────────────────

    def decode(self, data, bits=None):
        """Poly from ``Poly.encode`` output; rejects non-canonical values."""
        return Poly(self, self._decode_canonical(data, bits))

    def ntt_decode(self, data, bits=None):
        return NttPoly(self, self._decode_canonical(data, bits))

    def _decode_canonical(self, data, bits):
        bits = bits or self.q.bit_length()
        coeffs = encoding.unpack(data, self.n, bits)
        if any(c >= self.q for c in coeffs):
            raise MalformedInput(f"coefficient out of range for q={self.q}")
        return coeffs

    def encoded_size(self, bits=None):
        return encoding.packed_size(self.n, bits or self.q.bit_length())


class _RingElement:
    """Storage and the operations shared by both domains."""

    __slots__ = ("ring", "coeffs")

    def __init__(self, ring, coeffs):
        self.ring = ring
        self.coeffs = tuple(coeffs)

    def __len__(self):
        return len(self.coeffs)

    def __iter__(self):
        return iter(self.coeffs)

    def __getitem__(self, i):
        return self.coeffs[i]

    def __eq__(self, other):
        return (type(other) is type(self)
                and other.ring == self.ring
                and other.coeffs == self.coeffs)

    def __hash__(self):
        return hash((type(self).__name__, self.ring.q, self.coeffs))

    def __repr__(self):
        head = ", ".join(str(c) for c in self.coeffs[:4])
        return f"{type(self).__name__}(q={self.ring.q}, n={self.ring.n}, [{head}, ...])"

    def _check(self, other):
        if type(other) is not type(self):
            raise DomainError(
                f"cannot combine {type(self).__name__} with {type(other).__name__}"
            )
        if other.ring != self.ring:
            raise InvalidParameter(f"ring mismatch: {self.ring!r} vs {other.ring!r}")

    def __add__(self, other):
        self._check(other)
        add = self.ring.field.add
        return type(self)(self.ring, [add(a, b) for a, b in zip(self.coeffs, other.coeffs)])

    def __sub__(self, other):
        self._check(other)
        sub = self.ring.field.sub
        return type(self)(self.ring, [sub(a, b) for a, b in zip(self.coeffs, other.coeffs)])

    def __neg__(self):
        neg = self.ring.field.neg
        return type(self)(self.ring, [neg(a) for a in self.coeffs])

    def scale(self, c):
        """Multiply every coefficient by the scalar c (any int, reduced mod q)."""
        field = self.ring.field
        c = field.reduce(c)
        return type(self)(self.ring, [field.mul(a, c) for a in self.coeffs])

    def __rmul__(self, other):
        if isinstance(other, int):
            return self.scale(other)
        return NotImplemented

    def encode(self, bits=None):
        """Pack coefficients `bits` bits each (default: bitlen(q))."""
        bits = bits or self.ring.q.bit_length()
        if max(self.coeffs) >> bits:
            raise InvalidParameter(f"coefficient does not fit in {bits} bits")
        return encoding.pack(self.coeffs, bits)


class Poly(_RingElement):
    """Coefficient-domain ring element."""

    __slots__ = ()

    def __mul__(self, other):
        if isinstance(other, int):
            return self.scale(other)
        self._check(other)
        return self.ring.multiply(self, other)

    def to_ntt(self):
        return self.ring.ntt(self)

    def centered(self):
        """Coefficients as signed ints in (-(q-1)/2, (q-1)/2]."""
        centered = self.ring.field.centered
        return [centered(c) for c in self.coeffs]

    def infinity_norm(self):
        """max |c| over the centered coefficients."""
        q = self.ring.q
        half = q >> 1
        return max((q - c if c > half else c) for c in self.coeffs)


class NttPoly(_RingElement):
    """NTT-domain ring element."""

    __slots__ = ()

    def __mul__(self, other):
        if isinstance(other, int):
            return self.scale(other)
        self._check(other)
        return NttPoly(self.ring, self.ring.engine.pointwise_multiply(self.coeffs, other.coeffs))

    def from_ntt(self):
        return self.ring.intt(self)

    def infinity_norm(self):
        raise DomainError("norms are only defined in the coefficient domain")


class PolyVector:
    """Fixed-length vector of ring elements, all in one domain and ring."""

    __slots__ = ("polys",)

    def __init__(self, polys):
        polys = tuple(polys)
        if not polys:
            raise InvalidParameter("vector must have at least one entry")
        first = polys[0]
        for p in polys[1:]:
            first._check(p)
        self.polys = polys

    @property
    def ring(self):
        return self.polys[0].ring

    @property
    def domain(self):
        return type(self.polys[0])

    def __len__(self):
        return len(self.polys)

    def __iter__(self):
        return iter(self.polys)

    def __getitem__(self, i):
        return self.polys[i]

    def __eq__(self, other):
        return isinstance(other, PolyVector) and other.polys == self.polys

    def __hash__(self):
        return hash(self.polys)

    def __repr__(self):
        return f"PolyVector({self.domain.__name__} x {len(self)}, {self.ring!r})"

    def _check_len(self, other):
        if len(other) != len(self):
            raise InvalidParameter(f"vector length mismatch: {len(self)} vs {len(other)}")

    def __add__(self, other):
        self._check_len(other)
        return PolyVector(a + b for a, b in zip(self.polys, other.polys))

    def __sub__(self, other):
        self._check_len(other)
        return PolyVector(a - b for a, b in zip(self.polys, other.polys))

    def __neg__(self):
        return PolyVector(-a for a in self.polys)

    def map(self, fn):
        return PolyVector(fn(p) for p in self.polys)

    def ntt(self):
        return PolyVector(self.ring.ntt(p) for p in self.polys)

    def intt(self):
        return PolyVector(self.ring.intt(p) for p in self.polys)

    def scale_by(self, poly):
        """Multiply every entry by the same ring element (same domain)."""
        return PolyVector(p * poly for p in self.polys)

    def dot(self, other):
        """Inner product.  Coefficient-domain inputs go through the NTT."""
        self._check_len(other)
        if self.domain is Poly:
            return self.ntt().dot(other.ntt()).from_ntt()
        acc = self.polys[0] * other.polys[0]
        for a, b in zip(self.polys[1:], other.polys[1:]):
            acc = acc + a * b
        return acc

    def infinity_norm(self):
        return max(p.infinity_norm() for p in self.polys)

    def encode(self, bits=None):
        return b"".join(p.encode(bits) for p in self.polys)


class PolyMatrix:
    """Rectangular matrix of ring elements (row-major)."""

    __slots__ = ("rows",)

    def __init__(self, rows):
        rows = tuple(PolyVector(r) for r in rows)
        if not rows:
            raise InvalidParameter("matrix must have at least one row")
        width = len(rows[0])
        for r in rows:
            if len(r) != width:
                raise InvalidParameter("matrix rows must have equal length")
            rows[0][0]._check(r[0])
        self.rows = rows

    @property
    def shape(self):
        return len(self.rows), len(self.rows[0])

    def __getitem__(self, i):
        return self.rows[i]

    def __eq__(self, other):
        return isinstance(other, PolyMatrix) and other.rows == self.rows

    def __hash__(self):
        return hash(self.rows)

    def __repr__(self):
        return f"PolyMatrix({self.shape[0]}x{self.shape[1]}, {self.rows[0].ring!r})"

    def dot(self, vector):
        """Matrix-vector product M·v."""
        if len(vector) != self.shape[1]:
            raise InvalidParameter(
                f"cannot multiply {self.shape[0]}x{self.shape[1]} matrix "
                f"by vector of length {len(vector)}"
            )
        return PolyVector(row.dot(vector) for row in self.rows)

    def transpose(self):
        rows, cols = self.shape
        return PolyMatrix([self.rows[i][j] for i in range(rows)] for j in range(cols))
