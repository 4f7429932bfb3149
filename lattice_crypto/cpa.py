# Copyright (c) 2026 Signer — MIT License

"""Module-LWE public-key encryption (CPA-secure, Kyber-style K-PKE).

Generic over a KEM ``ParameterSet`` (k, eta1, eta2, du, dv).

    keygen:   A <- rho,  s, e <- CBD(eta1),  t = A*s + e   (NTT domain)
    encrypt:  r <- CBD(eta1), e1, e2 <- CBD(eta2)   (all from `coins`)
              u = Compress(A^T*r + e1, du)
              v = Compress(t*r + e2 + Decompress(m, 1), dv)
    decrypt:  m = Compress(Decompress(v, dv) - s*Decompress(u, du), 1)

Decryption is correct with overwhelming, not certain, probability: noise
plus compression rounding can flip a message bit.  The failure rate is set
by the parameters, not by code; decryption never raises on a well-formed
ciphertext.

Byte formats (internal, exact round trip):
    public key  = encode(t_hat, bitlen(q)) || rho(32)
    secret key  = encode(s_hat, bitlen(q))
    ciphertext  = encode(u, du) || encode(v, dv)
"""

import logging
import os
from dataclasses import dataclass, field

from . import encoding, xof
from .errors import InvalidParameter, MalformedInput
from .params import KEM, ParameterSet
from .poly import PolyVector
from .rounding import compress_poly, compress_vector, decompress_poly, decompress_vector
from .sampling import expand_matrix, sample_cbd

logger = logging.getLogger(__name__)

SEED_SIZE = 32
COINS_SIZE = 32


@dataclass(frozen=True)
class CpaPublicKey:
    params: ParameterSet = field(repr=False)
    rho: bytes
    t_hat: PolyVector = field(repr=False)

    def to_bytes(self):
        return self.t_hat.encode() + self.rho


@dataclass(frozen=True)
class CpaSecretKey:
    params: ParameterSet = field(repr=False)
    s_hat: PolyVector = field(repr=False)

    def to_bytes(self):
        return self.s_hat.encode()


@dataclass(frozen=True)
class CpaCiphertext:
    """Compressed (u, v); coefficients are ints in [0, 2^du) / [0, 2^dv)."""
    params: ParameterSet = field(repr=False)
    u: tuple
    v: tuple

    def to_bytes(self):
        p = self.params
        return (b"".join(encoding.pack(row, p.du) for row in self.u)
                + encoding.pack(self.v, p.dv))


class CpaScheme:
    """K-PKE over one parameter set."""

    def __init__(self, params):
        if params.kind != KEM:
            raise InvalidParameter(f"{params.label} is not an encryption parameter set")
        self.params = params
        self.ring = params.ring

    def __repr__(self):
        return f"CpaScheme({self.params.label})"

    # ── Sizes ─────────────────────────────────────────────────────

    @property
    def message_bytes(self):
        return self.params.message_bytes

    @property
    def public_key_size(self):
        return self.params.k * self.ring.encoded_size() + SEED_SIZE

    @property
    def secret_key_size(self):
        return self.params.k * self.ring.encoded_size()

    @property
    def ciphertext_size(self):
        p = self.params
        return (p.k * encoding.packed_size(p.n, p.du)
                + encoding.packed_size(p.n, p.dv))

    # ── Core algorithms ───────────────────────────────────────────

    def keygen(self, seed=None):
        """Generate (pk, sk) from a 32-byte seed (random if None)."""
        if seed is None:
            seed = os.urandom(SEED_SIZE)
        if len(seed) != SEED_SIZE:
            raise MalformedInput(f"CPA keygen requires a {SEED_SIZE}-byte seed, got {len(seed)}")
        p = self.params
        ring = self.ring
        rho, sigma = xof.hash_g(bytes(seed) + bytes([p.k]))

        A_hat = expand_matrix(ring, rho, p.k, p.k)
        s_hat = PolyVector(sample_cbd(ring, sigma, i, p.eta1) for i in range(p.k)).ntt()
        e_hat = PolyVector(sample_cbd(ring, sigma, p.k + i, p.eta1) for i in range(p.k)).ntt()

        # t_hat = A_hat * s_hat + e_hat (all in NTT domain)
        t_hat = A_hat.dot(s_hat) + e_hat
        logger.debug("cpa keygen: %s", p.label)
        return CpaPublicKey(p, rho, t_hat), CpaSecretKey(p, s_hat)

    def encrypt(self, pk, message, coins):
        """Encrypt an n/8-byte message with 32 bytes of coins.

        Deterministic in (pk, message, coins).
        """
        self._check_params(pk)
        p = self.params
        ring = self.ring
        if len(message) != p.message_bytes:
            raise MalformedInput(f"message must be {p.message_bytes} bytes, got {len(message)}")
        if len(coins) != COINS_SIZE:
            raise MalformedInput(f"coins must be {COINS_SIZE} bytes, got {len(coins)}")
        coins = bytes(coins)

        A_hat_T = expand_matrix(ring, pk.rho, p.k, p.k, transpose=True)
        r_hat = PolyVector(sample_cbd(ring, coins, i, p.eta1) for i in range(p.k)).ntt()
        e1 = PolyVector(sample_cbd(ring, coins, p.k + i, p.eta2) for i in range(p.k))
        e2 = sample_cbd(ring, coins, 2 * p.k, p.eta2)

        # u = NTT^-1(A^T * r) + e1
        u = A_hat_T.dot(r_hat).intt() + e1

        # v = NTT^-1(t . r) + e2 + Decompress(m, 1)
        m_poly = decompress_poly(ring, encoding.unpack(message, p.n, 1), 1)
        v = pk.t_hat.dot(r_hat).from_ntt() + e2 + m_poly

        return CpaCiphertext(
            p,
            tuple(tuple(row) for row in compress_vector(u, p.du)),
            tuple(compress_poly(v, p.dv)),
        )

    def decrypt(self, sk, ct):
        """Recover the n/8-byte message."""
        self._check_params(sk)
        self._check_params(ct)
        p = self.params
        ring = self.ring
        u = decompress_vector(ring, ct.u, p.du)
        v = decompress_poly(ring, ct.v, p.dv)

        # w = v - NTT^-1(s_hat . NTT(u))
        w = v - sk.s_hat.dot(u.ntt()).from_ntt()
        return encoding.pack(compress_poly(w, 1), 1)

    def _check_params(self, obj):
        if obj.params != self.params:
            raise InvalidParameter(
                f"{type(obj).__name__} for {obj.params.label} used with {self.params.label}"
            )

    # ── Decoding ──────────────────────────────────────────────────

    def public_key_from_bytes(self, data):
        """Decode a public key; non-canonical coefficients are rejected."""
        p = self.params
        ring = self.ring
        size = ring.encoded_size()
        *chunks, rho = encoding.split(data, [size] * p.k + [SEED_SIZE])
        return CpaPublicKey(p, rho, PolyVector(ring.ntt_decode(c) for c in chunks))

    def secret_key_from_bytes(self, data):
        p = self.params
        ring = self.ring
        chunks = encoding.split(data, [ring.encoded_size()] * p.k)
        return CpaSecretKey(p, PolyVector(ring.ntt_decode(c) for c in chunks))

    def ciphertext_from_bytes(self, data):
        p = self.params
        u_size = encoding.packed_size(p.n, p.du)
        v_size = encoding.packed_size(p.n, p.dv)
        *u_chunks, v_chunk = encoding.split(data, [u_size] * p.k + [v_size])
        return CpaCiphertext(
            p,
            tuple(tuple(encoding.unpack(c, p.n, p.du)) for c in u_chunks),
            tuple(encoding.unpack(v_chunk, p.n, p.dv)),
        )
