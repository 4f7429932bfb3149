# Copyright (c) 2026 Signer — MIT License

"""Compression, decomposition and hints.

Compression (ciphertexts):
    compress(x)   = round(2^bits / q * x) mod 2^bits
    decompress(y) = round(q / 2^bits * y)
    |decompress(compress(x)) - x| <= round(q / 2^(bits+1))   (mod q)

Decomposition (signatures), for 2*gamma2 dividing q - 1:
    r0 = r mod± 2*gamma2,  r1 = (r - r0) / (2*gamma2)
    so that r = r1 * 2*gamma2 + r0 with -gamma2 < r0 <= gamma2.

Wraparound rule: when r - r0 == q - 1 the high part would equal
m = (q-1)/(2*gamma2), which is congruent to 0.  In that case we return
r1 = 0 and r0 - 1 instead.  The identity r == r1*2*gamma2 + r0 (mod q)
still holds, r0 may then equal -gamma2, and r1 always lies in [0, m).
Signer and verifier both go through ``decompose``, so they agree on this
edge bit-for-bit.

Hints: make_hint(z, r) flags coefficients whose high bits change when z is
added to r.  use_hint(h, r) then moves high_bits(r) one step (mod m) in the
direction of the sign of r0, recovering high_bits(r + z) whenever
|z| <= gamma2.
"""

from .errors import DomainError
from .poly import Poly, PolyVector


def _require_poly(p):
    if not isinstance(p, Poly):
        raise DomainError(
            f"expected a coefficient-domain Poly, got {type(p).__name__}"
        )


# ── Compression / decompression ──────────────────────────────────

def compress(x, q, bits):
    """round(2^bits / q * x) mod 2^bits.  q is odd, so no exact ties."""
    m = 1 << bits
    return ((x * m + (q >> 1)) // q) & (m - 1)


def decompress(y, q, bits):
    """round(q / 2^bits * y).  Division by 2^bits is a right shift."""
    m = 1 << bits
    return (y * q + (m >> 1)) >> bits


def compress_poly(p, bits):
    """Compress every coefficient of a Poly; returns a list of ints."""
    _require_poly(p)
    q = p.ring.q
    return [compress(c, q, bits) for c in p.coeffs]


def decompress_poly(ring, values, bits):
    q = ring.q
    return ring.from_coeffs(decompress(y, q, bits) for y in values)


def compress_vector(v, bits):
    return [compress_poly(p, bits) for p in v]


def decompress_vector(ring, rows, bits):
    return PolyVector(decompress_poly(ring, r, bits) for r in rows)


# ── Power2Round ──────────────────────────────────────────────────

def power2_round(r, d):
    """Split r in [0, q) as r1 * 2^d + r0, r0 in (-2^(d-1), 2^(d-1)]. Branchless."""
    r0 = r & ((1 << d) - 1)
    half = 1 << (d - 1)
    gt = 1 + ((r0 - half - 1) >> 63)  # 1 if r0 > 2^(d-1), else 0
    r0 = r0 - gt * (1 << d)
    return (r - r0) >> d, r0


def power2_round_vector(v, d):
    """(t1, t0) for a coefficient-domain vector; t0 is stored mod q."""
    t1 = []
    t0 = []
    for p in v:
        _require_poly(p)
        hi = []
        lo = []
        for c in p.coeffs:
            r1, r0 = power2_round(c, d)
            hi.append(r1)
            lo.append(r0)
        t1.append(p.ring.from_coeffs(hi))
        t0.append(p.ring.from_coeffs(lo))
    return PolyVector(t1), PolyVector(t0)


# ── Decompose / HighBits / LowBits ───────────────────────────────

def decompose(r, q, gamma2):
    """(r1, r0) with r = r1*2*gamma2 + r0 (mod q); see module docstring."""
    two_g = 2 * gamma2
    r0 = r % two_g
    if r0 > gamma2:
        r0 -= two_g
    if r - r0 == q - 1:
        return 0, r0 - 1
    return (r - r0) // two_g, r0


def high_bits(r, q, gamma2):
    return decompose(r, q, gamma2)[0]


def low_bits(r, q, gamma2):
    return decompose(r, q, gamma2)[1]


def make_hint(z, r, q, gamma2):
    """1 if high_bits(r) != high_bits(r + z), else 0."""
    return int(high_bits(r, q, gamma2) != high_bits((r + z) % q, q, gamma2))


def use_hint(h, r, q, gamma2):
    """Recover high_bits(r + z) from r and the hint bit h."""
    m = (q - 1) // (2 * gamma2)
    r1, r0 = decompose(r, q, gamma2)
    if not h:
        return r1
    if r0 > 0:
        return (r1 + 1) % m
    return (r1 - 1) % m


# ── Vector forms ─────────────────────────────────────────────────

def high_bits_vector(v, gamma2):
    """High bits of every coefficient, as a list of int lists."""
    out = []
    for p in v:
        _require_poly(p)
        q = p.ring.q
        out.append([high_bits(c, q, gamma2) for c in p.coeffs])
    return out


def low_bits_norm(v, gamma2):
    """max |low_bits(c)| over a coefficient-domain vector."""
    best = 0
    for p in v:
        _require_poly(p)
        q = p.ring.q
        for c in p.coeffs:
            r0 = low_bits(c, q, gamma2)
            if abs(r0) > best:
                best = abs(r0)
    return best


def make_hint_vector(z, r, gamma2):
    """Hint bits for vectors z, r (coefficient domain); list of bit lists."""
    out = []
    for zp, rp in zip(z, r):
        _require_poly(zp)
        _require_poly(rp)
        q = rp.ring.q
        out.append([make_hint(a, b, q, gamma2) for a, b in zip(zp.coeffs, rp.coeffs)])
    return out


def use_hint_vector(h, r, gamma2):
    out = []
    for hp, rp in zip(h, r):
        _require_poly(rp)
        q = rp.ring.q
        out.append([use_hint(a, b, q, gamma2) for a, b in zip(hp, rp.coeffs)])
    return out


def hint_weight(h):
    """Number of non-zero hint entries."""
    return sum(1 for row in h for bit in row if bit)
