# Copyright (c) 2026 Signer — MIT License

"""Fiat-Shamir-with-aborts signatures (Dilithium-style), generic over a
signature ``ParameterSet``.

Key generation:
    (rho, rho', K) = SHAKE-256(xi || k || l)
    A <- rho,  s1 (l), s2 (k) <- CBD(eta) from rho'
    t = A*s1 + s2,  (t1, t0) = Power2Round(t, d)
    pk = (rho, t1),  sk = (rho, K, tr = H(pk), s1, s2, t0)

Signing, one attempt per pass through the loop:
    SampleMask       y <- [-(gamma1-1), gamma1-1]^l from rho'' and a counter
    Commit           w = A*y,  w1 = HighBits(w)
    DeriveChallenge  c_tilde = H(mu || w1),  c = ChallengeInBall(c_tilde)
    ComputeResponse  z = y + c*s1
    CheckBounds      restart if any of
                        ||z||_inf >= gamma1 - beta
                        ||LowBits(w - c*s2)||_inf >= gamma2 - beta
                        ||c*t0||_inf >= gamma2
                        weight(h) > omega
    Accept           sigma = (c_tilde, z, h),
                     h = MakeHint(-c*t0, w - c*s2 + c*t0)

Attempts are capped at ``max_iterations``; running out raises
SignatureRejectionOverflow instead of looping forever.  Each attempt draws
a fresh mask from rho'' and the attempt counter, so the loop is
deterministic for a deterministic rho''.

Verification recomputes w1' = UseHint(h, A*z - c*t1*2^d) and accepts iff
the re-derived challenge seed equals c_tilde.  Invalid signatures, bad
encodings and mismatched parameter sets all come back as ``False``.

Pure-mode framing: M' = 0 || len(ctx) || ctx || M, with ctx <= 255 bytes.
"""

import hmac
import logging
import os
from dataclasses import dataclass, field

from . import encoding, secmem, xof
from .errors import InvalidParameter, MalformedInput, SignatureRejectionOverflow
from .params import DSA
from .poly import Poly, PolyVector
from .rounding import (
    high_bits_vector,
    hint_weight,
    low_bits_norm,
    make_hint_vector,
    power2_round_vector,
    use_hint_vector,
)
from .sampling import challenge_in_ball, expand_matrix, sample_cbd, sample_mask

logger = logging.getLogger(__name__)

SEED_SIZE = 32
RND_SIZE = 32
_TR_SIZE = 64
_MU_SIZE = 64
_MAX_CTX = 255
_MAX_NONCE = 1 << 16


@dataclass(frozen=True)
class DsaPublicKey:
    params: object = field(repr=False)
    rho: bytes
    t1: PolyVector = field(repr=False)

    def to_bytes(self):
        bits = _Layout(self.params).t1_bits
        return self.rho + self.t1.encode(bits)


@dataclass(frozen=True)
class DsaSecretKey:
    params: object = field(repr=False)
    rho: bytes = field(repr=False)
    key: bytes = field(repr=False)
    tr: bytes = field(repr=False)
    s1: PolyVector = field(repr=False)
    s2: PolyVector = field(repr=False)
    t0: PolyVector = field(repr=False)

    def to_bytes(self):
        p = self.params
        lay = _Layout(p)
        out = bytearray(self.rho + self.key + self.tr)
        for poly in self.s1.polys + self.s2.polys:
            out += encoding.pack_signed(poly.coeffs, p.q, p.eta1, lay.eta_bits)
        for poly in self.t0:
            out += encoding.pack_signed(poly.coeffs, p.q, 1 << (p.d - 1), p.d)
        return bytes(out)


@dataclass(frozen=True)
class Signature:
    """(c_tilde, z, h); h is a tuple of k bit-tuples."""
    params: object = field(repr=False)
    c_tilde: bytes
    z: PolyVector = field(repr=False)
    hint: tuple = field(repr=False)

    def to_bytes(self):
        """c_tilde || z || hint, hint as omega + k bytes.

        The first omega bytes list the positions of set hint bits, row by
        row in increasing order; byte omega + i holds the running count of
        positions after row i.
        """
        p = self.params
        lay = _Layout(p)
        out = bytearray(self.c_tilde)
        for poly in self.z:
            out += encoding.pack_signed(poly.coeffs, p.q, p.gamma1, lay.z_bits)
        hint_buf = bytearray(p.omega + p.k)
        idx = 0
        for i, row in enumerate(self.hint):
            for j, bit in enumerate(row):
                if bit:
                    hint_buf[idx] = j
                    idx += 1
            hint_buf[p.omega + i] = idx
        return bytes(out + hint_buf)


class _Layout:
    """Bit widths and byte sizes derived from one parameter set."""

    def __init__(self, p):
        n = p.n
        self.t1_bits = ((p.q - 1 + (1 << (p.d - 1))) >> p.d).bit_length()
        self.eta_bits = (2 * p.eta1).bit_length()
        self.z_bits = (2 * p.gamma1 - 1).bit_length()
        self.w1_bits = ((p.q - 1) // (2 * p.gamma2) - 1).bit_length()
        self.t1_size = encoding.packed_size(n, self.t1_bits)
        self.eta_size = encoding.packed_size(n, self.eta_bits)
        self.t0_size = encoding.packed_size(n, p.d)
        self.z_size = encoding.packed_size(n, self.z_bits)
        self.public_key_size = SEED_SIZE + p.k * self.t1_size
        self.secret_key_size = (2 * SEED_SIZE + _TR_SIZE
                                + (p.l + p.k) * self.eta_size + p.k * self.t0_size)
        self.signature_size = p.c_tilde_bytes + p.l * self.z_size + p.omega + p.k


def _frame(message, ctx):
    """M' = 0 || len(ctx) || ctx || M."""
    ctx = bytes(ctx)
    if len(ctx) > _MAX_CTX:
        raise MalformedInput(f"context string must be <= {_MAX_CTX} bytes, got {len(ctx)}")
    return b"\x00" + bytes([len(ctx)]) + ctx + bytes(message)


class SignatureScheme:
    """Signature scheme over one parameter set.

    Args:
        params: A signature ``ParameterSet``.
        max_iterations: Cap on rejection-loop attempts per signature.
    """

    def __init__(self, params, max_iterations=1000):
        if params.kind != DSA:
            raise InvalidParameter(f"{params.label} is not a signature parameter set")
        if max_iterations < 1 or (max_iterations + 1) * params.l > _MAX_NONCE:
            raise InvalidParameter(
                f"max_iterations must be in [1, {_MAX_NONCE // params.l - 1}], got {max_iterations}"
            )
        self.params = params
        self.ring = params.ring
        self.max_iterations = max_iterations
        self._layout = _Layout(params)

    def __repr__(self):
        return f"SignatureScheme({self.params.label}, max_iterations={self.max_iterations})"

    @property
    def public_key_size(self):
        return self._layout.public_key_size

    @property
    def secret_key_size(self):
        return self._layout.secret_key_size

    @property
    def signature_size(self):
        return self._layout.signature_size

    # ── Key generation ────────────────────────────────────────────

    def keygen(self, seed=None):
        """Generate (pk, sk) from a 32-byte seed xi (random if None)."""
        if seed is None:
            seed = os.urandom(SEED_SIZE)
        if len(seed) != SEED_SIZE:
            raise MalformedInput(f"signature keygen requires a {SEED_SIZE}-byte seed, got {len(seed)}")
        p = self.params
        ring = self.ring

        expanded = bytearray(xof.shake256(bytes(seed) + bytes([p.k, p.l]), 128))
        with secmem.locked(expanded):
            rho = bytes(expanded[:32])
            rho_prime = bytes(expanded[32:96])
            key = bytes(expanded[96:128])

        A_hat = expand_matrix(ring, rho, p.k, p.l)
        s1 = PolyVector(sample_cbd(ring, rho_prime, i, p.eta1) for i in range(p.l))
        s2 = PolyVector(sample_cbd(ring, rho_prime, p.l + i, p.eta1) for i in range(p.k))

        t = A_hat.dot(s1.ntt()).intt() + s2
        t1, t0 = power2_round_vector(t, p.d)

        pk = DsaPublicKey(p, rho, t1)
        tr = xof.shake256(pk.to_bytes(), _TR_SIZE)
        sk = DsaSecretKey(p, rho, key, tr, s1, s2, t0)
        logger.debug("dsa keygen: %s", p.label)
        return pk, sk

    def public_key_from_secret(self, sk):
        """Rebuild pk from sk (t1 recomputed from s1, s2)."""
        self._check_params(sk)
        p = self.params
        A_hat = expand_matrix(self.ring, sk.rho, p.k, p.l)
        t = A_hat.dot(sk.s1.ntt()).intt() + sk.s2
        t1, _ = power2_round_vector(t, p.d)
        return DsaPublicKey(p, sk.rho, t1)

    # ── Signing ───────────────────────────────────────────────────

    def sign(self, sk, message, ctx=b"", rnd=None, deterministic=False):
        """Sign `message`; returns a ``Signature``.

        Hedged by default (fresh 32-byte rnd).  deterministic=True uses
        rnd = 0^32; an explicit rnd overrides both.

        Raises:
            MalformedInput: ctx longer than 255 bytes or rnd not 32 bytes.
            SignatureRejectionOverflow: every attempt was rejected.
            RuntimeError: verify-after-sign detected a fault.
        """
        return self.sign_with_stats(sk, message, ctx, rnd=rnd, deterministic=deterministic)[0]

    def sign_with_stats(self, sk, message, ctx=b"", rnd=None, deterministic=False):
        """Like ``sign`` but returns (signature, attempts)."""
        if isinstance(sk, (bytes, bytearray)):
            sk = self.secret_key_from_bytes(sk)
        self._check_params(sk)
        m_prime = _frame(message, ctx)
        sig, attempts = self._sign_internal(sk, m_prime, rnd, deterministic)

        # Verify-after-sign (fault injection countermeasure)
        if not self._verify_internal(self.public_key_from_secret(sk), m_prime, sig):
            raise RuntimeError("verify-after-sign failed (fault detected)")
        return sig, attempts

    def _sign_internal(self, sk, m_prime, rnd, deterministic):
        p = self.params
        ring = self.ring
        if rnd is not None:
            rnd = bytes(rnd)
            if len(rnd) != RND_SIZE:
                raise MalformedInput(f"rnd must be {RND_SIZE} bytes, got {len(rnd)}")
        elif deterministic:
            rnd = bytes(RND_SIZE)
        else:
            rnd = os.urandom(RND_SIZE)

        A_hat = expand_matrix(ring, sk.rho, p.k, p.l)
        s1_hat = sk.s1.ntt()
        s2_hat = sk.s2.ntt()
        t0_hat = sk.t0.ntt()

        mu = xof.shake256(sk.tr + m_prime, _MU_SIZE)
        rho_prime = bytearray(xof.shake256(sk.key + rnd + mu, 64))

        bound_z = p.gamma1 - p.beta
        bound_r0 = p.gamma2 - p.beta
        with secmem.locked(rho_prime):
            for attempt in range(1, self.max_iterations + 1):
                kappa = (attempt - 1) * p.l

                # SampleMask
                y = PolyVector(
                    sample_mask(ring, bytes(rho_prime), kappa + i, p.gamma1)
                    for i in range(p.l)
                )

                # Commit
                w = A_hat.dot(y.ntt()).intt()
                w1 = high_bits_vector(w, p.gamma2)

                # DeriveChallenge
                c_tilde = xof.shake256(mu + self._encode_w1(w1), p.c_tilde_bytes)
                c_hat = challenge_in_ball(ring, c_tilde, p.tau).to_ntt()

                # ComputeResponse
                z = y + s1_hat.scale_by(c_hat).intt()

                # CheckBounds
                if z.infinity_norm() >= bound_z:
                    logger.debug("attempt %d rejected: response norm", attempt)
                    continue
                r = w - s2_hat.scale_by(c_hat).intt()
                if low_bits_norm(r, p.gamma2) >= bound_r0:
                    logger.debug("attempt %d rejected: low bits norm", attempt)
                    continue
                ct0 = t0_hat.scale_by(c_hat).intt()
                if ct0.infinity_norm() >= p.gamma2:
                    logger.debug("attempt %d rejected: c*t0 norm", attempt)
                    continue
                h = make_hint_vector(-ct0, r + ct0, p.gamma2)
                if hint_weight(h) > p.omega:
                    logger.debug("attempt %d rejected: hint weight", attempt)
                    continue

                logger.debug("signature accepted after %d attempt(s)", attempt)
                return Signature(p, c_tilde, z, tuple(tuple(row) for row in h)), attempt

        raise SignatureRejectionOverflow(
            f"signing failed after {self.max_iterations} rejection attempts"
        )

    def _encode_w1(self, w1):
        bits = self._layout.w1_bits
        return b"".join(encoding.pack(row, bits) for row in w1)

    # ── Verification ──────────────────────────────────────────────

    def verify(self, pk, message, signature, ctx=b""):
        """True iff `signature` is valid for (pk, ctx, message).

        Never raises for forged, corrupted or foreign inputs.
        """
        if len(ctx) > _MAX_CTX:
            return False
        try:
            if isinstance(pk, (bytes, bytearray)):
                pk = self.public_key_from_bytes(pk)
            if isinstance(signature, (bytes, bytearray)):
                signature = self.signature_from_bytes(signature)
            self._check_params(pk)
            self._check_params(signature)
        except (MalformedInput, InvalidParameter):
            return False
        if not self._well_formed(pk, signature):
            return False
        return self._verify_internal(pk, _frame(message, ctx), signature)

    def _well_formed(self, pk, sig):
        """Shape checks for key and signature objects not built by the decoders."""
        p = self.params
        ring = self.ring
        if len(pk.rho) != SEED_SIZE or len(sig.c_tilde) != p.c_tilde_bytes:
            return False
        if not (isinstance(pk.t1, PolyVector) and isinstance(sig.z, PolyVector)):
            return False
        if len(pk.t1) != p.k or len(sig.z) != p.l:
            return False
        for poly in tuple(pk.t1) + tuple(sig.z):
            if not isinstance(poly, Poly) or poly.ring != ring:
                return False
        if len(sig.hint) != p.k:
            return False
        for row in sig.hint:
            if len(row) != p.n or any(bit not in (0, 1) for bit in row):
                return False
        return True

    def _verify_internal(self, pk, m_prime, sig):
        p = self.params
        ring = self.ring

        if sig.z.infinity_norm() >= p.gamma1 - p.beta:
            return False
        if hint_weight(sig.hint) > p.omega:
            return False

        A_hat = expand_matrix(ring, pk.rho, p.k, p.l)
        tr = xof.shake256(pk.to_bytes(), _TR_SIZE)
        mu = xof.shake256(tr + m_prime, _MU_SIZE)
        c_hat = challenge_in_ball(ring, sig.c_tilde, p.tau).to_ntt()

        # w' = A*z - c*t1*2^d
        shift = 1 << p.d
        t1_hat = pk.t1.map(lambda poly: poly.scale(shift)).ntt()
        w_approx = (A_hat.dot(sig.z.ntt()) - t1_hat.scale_by(c_hat)).intt()

        w1 = use_hint_vector(sig.hint, w_approx, p.gamma2)
        c_tilde_check = xof.shake256(mu + self._encode_w1(w1), p.c_tilde_bytes)
        return hmac.compare_digest(sig.c_tilde, c_tilde_check)

    def _check_params(self, obj):
        if obj.params != self.params:
            raise InvalidParameter(
                f"{type(obj).__name__} for {obj.params.label} used with {self.params.label}"
            )

    # ── Decoding ──────────────────────────────────────────────────

    def public_key_from_bytes(self, data):
        p = self.params
        lay = self._layout
        rho, *chunks = encoding.split(data, [SEED_SIZE] + [lay.t1_size] * p.k)
        return DsaPublicKey(p, rho, PolyVector(self.ring.decode(c, lay.t1_bits) for c in chunks))

    def secret_key_from_bytes(self, data):
        p = self.params
        lay = self._layout
        ring = self.ring
        sizes = ([SEED_SIZE, SEED_SIZE, _TR_SIZE]
                 + [lay.eta_size] * (p.l + p.k) + [lay.t0_size] * p.k)
        rho, key, tr, *chunks = encoding.split(data, sizes)
        small = [
            ring.from_coeffs(encoding.unpack_signed(c, p.n, p.q, p.eta1, lay.eta_bits,
                                                    bound=2 * p.eta1))
            for c in chunks[:p.l + p.k]
        ]
        t0 = [
            ring.from_coeffs(encoding.unpack_signed(c, p.n, p.q, 1 << (p.d - 1), p.d))
            for c in chunks[p.l + p.k:]
        ]
        return DsaSecretKey(p, rho, key, tr,
                            PolyVector(small[:p.l]), PolyVector(small[p.l:]), PolyVector(t0))

    def signature_from_bytes(self, data):
        """Decode c_tilde || z || hint.

        Raises:
            MalformedInput: wrong length or a non-canonical hint section
                (counts decreasing or above omega, positions not strictly
                increasing within a row, or non-zero unused slots).
        """
        p = self.params
        lay = self._layout
        ring = self.ring
        c_tilde, *chunks, hint_section = encoding.split(
            data, [p.c_tilde_bytes] + [lay.z_size] * p.l + [p.omega + p.k]
        )
        z = PolyVector(
            ring.from_coeffs(encoding.unpack_signed(c, p.n, p.q, p.gamma1, lay.z_bits))
            for c in chunks
        )

        # Hint data is public; early exits do not leak secrets.
        h = [[0] * p.n for _ in range(p.k)]
        idx = 0
        for i in range(p.k):
            end = hint_section[p.omega + i]
            if end < idx or end > p.omega:
                raise MalformedInput("malformed hint counts")
            for j in range(idx, end):
                if j > idx and hint_section[j] <= hint_section[j - 1]:
                    raise MalformedInput("hint positions not strictly increasing")
                h[i][hint_section[j]] = 1
            idx = end
        if any(hint_section[idx:p.omega]):
            raise MalformedInput("non-zero padding in hint section")
        return Signature(p, c_tilde, z, tuple(tuple(row) for row in h))
