# Copyright (c) 2026 Signer — MIT License

"""Samplers for ring elements.

Every sampler is a pure function of caller-supplied seed material: bytes
come from a fresh ``XofStream`` (or a PRF output) built from that seed, and
nothing is kept between calls.  Signer and verifier (or encryptor and
decryptor) therefore recompute identical values from identical seeds.

Timing note: the uniform matrix sampler rejects on *public* randomness
(rho is part of the public key), so data-dependent loop counts there do not
leak secrets.
"""

from . import xof
from .errors import InvalidParameter, MalformedInput
from .poly import PolyMatrix


def sample_uniform(stream, bound):
    """Uniform integer in [0, bound) by rejection sampling.

    Draws just enough bytes to cover bound - 1, masks to its bit length and
    discards out-of-range candidates, so the result is unbiased for bounds
    that are not powers of two.
    """
    if bound < 1:
        raise InvalidParameter(f"bound must be positive, got {bound}")
    bits = (bound - 1).bit_length()
    if bits == 0:
        return 0
    nbytes = (bits + 7) // 8
    mask = (1 << bits) - 1
    while True:
        x = int.from_bytes(xof.squeeze(stream, nbytes), "little") & mask
        if x < bound:
            return x


def sample_uniform_ntt(ring, seed, i, j):
    """Uniform NTT-domain element for matrix entry (i, j).

    Uses XOF = SHAKE-128(seed || j || i).  A uniform element is uniform in
    either domain, so no transform is needed.
    """
    stream = xof.absorb(seed + bytes([j, i]), "shake128")
    q = ring.q
    return ring.ntt_from_coeffs(sample_uniform(stream, q) for _ in range(ring.n))


def expand_matrix(ring, rho, rows, cols, transpose=False):
    """Public matrix A (rows x cols, NTT domain) from seed rho.

    With transpose=True the same entries are laid out as A^T, without a
    second expansion pass over A.
    """
    if transpose:
        return PolyMatrix(
            [sample_uniform_ntt(ring, rho, j, i) for j in range(rows)]
            for i in range(cols)
        )
    return PolyMatrix(
        [sample_uniform_ntt(ring, rho, i, j) for j in range(cols)]
        for i in range(rows)
    )


def centered_binomial(ring, data, eta):
    """Centered binomial distribution CBD_eta.

    Each coefficient uses 2*eta bits: popcount of the first eta bits minus
    popcount of the next eta.  The result lies in [-eta, eta].
    """
    expected = ring.n * 2 * eta // 8
    if len(data) != expected:
        raise MalformedInput(f"CBD_{eta} needs {expected} bytes, got {len(data)}")
    stream = int.from_bytes(data, "little")
    bits_per_coeff = 2 * eta
    chunk_mask = (1 << bits_per_coeff) - 1
    half_mask = (1 << eta) - 1
    f = []
    for _ in range(ring.n):
        chunk = stream & chunk_mask
        stream >>= bits_per_coeff
        a_sum = (chunk & half_mask).bit_count()
        b_sum = (chunk >> eta).bit_count()
        f.append(a_sum - b_sum)
    return ring.from_coeffs(f)


def sample_cbd(ring, seed, nonce, eta):
    """CBD_eta element from PRF(seed, nonce)."""
    return centered_binomial(ring, xof.prf(seed, nonce, ring.n * 2 * eta // 8), eta)


def sample_mask(ring, seed, nonce, gamma1):
    """Masking element with coefficients uniform in [-(gamma1-1), gamma1-1]."""
    stream = xof.prf_stream(seed, nonce)
    width = 2 * gamma1 - 1
    offset = gamma1 - 1
    return ring.from_coeffs(sample_uniform(stream, width) - offset for _ in range(ring.n))


def challenge_in_ball(ring, c_tilde, tau):
    """Challenge c with exactly tau coefficients equal to ±1, the rest 0.

    Deterministic in c_tilde alone.  The first ceil(tau/8) bytes of
    SHAKE-256(c_tilde) supply the signs; positions come from an inside-out
    Fisher-Yates shuffle over the last tau slots.
    """
    n = ring.n
    if not 0 < tau <= n:
        raise InvalidParameter(f"challenge weight must be in [1, {n}], got {tau}")
    stream = xof.absorb(c_tilde)
    signs = int.from_bytes(xof.squeeze(stream, (tau + 7) // 8), "little")
    minus_one = ring.q - 1
    c = [0] * n
    for idx, i in enumerate(range(n - tau, n)):
        j = sample_uniform(stream, i + 1)
        c[i] = c[j]
        c[j] = minus_one if (signs >> idx) & 1 else 1
    return ring.from_coeffs(c)
