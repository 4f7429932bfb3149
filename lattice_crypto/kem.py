# Copyright (c) 2026 Signer — MIT License

"""CCA-secure KEM from any CPA encryption scheme (Fujisaki-Okamoto transform).

    keygen(d || z):    (pk, sk_pke) = PKE.keygen(d)
                       sk = sk_pke || pk || H(pk) || z
    encapsulate(pk):   m random, (K, coins) = G(m || H(pk))
                       ct = PKE.encrypt(pk, m, coins)          -> (ct, K)
    decapsulate(sk, ct):
                       m' = PKE.decrypt(sk_pke, ct)
                       (K', coins') = G(m' || H(pk))
                       K_bar = J(z || ct)
                       return K' if PKE.encrypt(pk, m', coins') == ct else K_bar

Implicit rejection: a ciphertext that fails re-encryption yields the
pseudorandom K_bar instead of an error, so decapsulation never raises on a
correctly sized ciphertext and reveals nothing about why it failed.

Constant-time (best effort): both K' and K_bar are always computed,
compared with ``hmac.compare_digest`` and selected with a branchless byte
mask.  Secret intermediates live in bytearrays that are page-locked and
wiped through ``secmem``.

The transform is duck-typed over the encryption scheme.  It uses only:

    params, message_bytes, public_key_size, secret_key_size, ciphertext_size
    keygen(seed), encrypt(pk, message, coins), decrypt(sk, ct)
    public_key_from_bytes, secret_key_from_bytes, ciphertext_from_bytes

plus ``to_bytes()`` on the keys and ciphertexts it returns.  ``CpaScheme``
provides all of these for every KEM parameter set.
"""

import hmac
import logging
import os
from dataclasses import dataclass, field

from . import encoding, secmem, xof
from .errors import MalformedInput

logger = logging.getLogger(__name__)

SEED_SIZE = 64
SHARED_SECRET_SIZE = 32
_HALF = 32


@dataclass(frozen=True)
class KemSecretKey:
    """Decapsulation key: inner secret key, public key, H(pk), rejection seed z."""
    inner_sk: object = field(repr=False)
    inner_pk: object = field(repr=False)
    h_pk: bytes = field(repr=False)
    z: bytes = field(repr=False)

    def to_bytes(self):
        return self.inner_sk.to_bytes() + self.inner_pk.to_bytes() + self.h_pk + self.z


def _ct_select_bytes(flag, a, b):
    """Return *a* if flag is truthy, *b* otherwise.  Constant-time.

    Expands *flag* (0/1 or bool) into a per-byte mask without any
    data-dependent branch.  Both *a* and *b* are always fully read.
    """
    f = int(bool(flag)) & 1
    # f=1 → m=0xFF (select a), f=0 → m=0x00 (select b).
    m = ((f - 1) & 0xFF) ^ 0xFF
    nm = m ^ 0xFF
    return bytes((ai & m) | (bi & nm) for ai, bi in zip(a, b))


class Kem:
    """Fujisaki-Okamoto KEM over an encryption scheme such as ``CpaScheme``."""

    def __init__(self, pke):
        self.pke = pke
        self.params = pke.params

    def __repr__(self):
        return f"Kem({self.pke!r})"

    @property
    def ciphertext_size(self):
        return self.pke.ciphertext_size

    @property
    def secret_key_size(self):
        return self.pke.secret_key_size + self.pke.public_key_size + 2 * _HALF

    # ── Key generation ────────────────────────────────────────────

    def keygen(self, seed=None):
        """Generate (pk, sk) from a 64-byte seed d || z (random if None).

        Returns:
            (public_key, KemSecretKey)
        """
        if seed is None:
            seed = os.urandom(SEED_SIZE)
        if len(seed) != SEED_SIZE:
            raise MalformedInput(f"KEM keygen requires a {SEED_SIZE}-byte seed, got {len(seed)}")
        seed = bytes(seed)
        pk, inner_sk = self.pke.keygen(seed[:_HALF])
        h_pk = xof.hash_h(pk.to_bytes())
        logger.debug("kem keygen: %s", self.params.label)
        return pk, KemSecretKey(inner_sk, pk, h_pk, seed[_HALF:])

    # ── Encapsulation ─────────────────────────────────────────────

    def encapsulate(self, pk, randomness=None):
        """Encapsulate a fresh shared secret to `pk`.

        Args:
            pk: Public key object (or its bytes).
            randomness: Optional message-sized bytes for deterministic testing.

        Returns:
            (ciphertext_bytes, shared_secret) with a 32-byte shared secret.
        """
        pk = self._public_key(pk)
        size = self.pke.message_bytes
        if randomness is None:
            randomness = os.urandom(size)
        if len(randomness) != size:
            raise MalformedInput(f"encapsulation randomness must be {size} bytes, got {len(randomness)}")

        m = bytearray(randomness)
        g_output = bytearray()
        try:
            # (K, coins) = G(m || H(pk))
            g_output = bytearray(b"".join(xof.hash_g(bytes(m) + xof.hash_h(pk.to_bytes()))))
            ct = self.pke.encrypt(pk, bytes(m), bytes(g_output[_HALF:]))
            return ct.to_bytes(), bytes(g_output[:_HALF])
        finally:
            secmem.secure_zero(m)
            secmem.secure_zero(g_output)

    # ── Decapsulation ─────────────────────────────────────────────

    def decapsulate(self, sk, ct):
        """Recover the shared secret from ciphertext bytes.

        A tampered or foreign ciphertext of the right size yields the
        implicit-rejection key J(z || ct): 32 bytes, deterministic per
        (sk, ct), and unrelated to the real secret.

        Raises:
            MalformedInput: only if `ct` has the wrong length.
        """
        if isinstance(sk, (bytes, bytearray)):
            sk = self.secret_key_from_bytes(sk)
        ct = bytes(ct)
        parsed = self.pke.ciphertext_from_bytes(ct)

        z = bytearray(sk.z)
        m_prime = bytearray()
        g_output = bytearray()
        K_bar = bytearray()
        with secmem.locked(z):
            try:
                m_prime = bytearray(self.pke.decrypt(sk.inner_sk, parsed))

                # (K', coins') = G(m' || h)
                g_output = bytearray(b"".join(xof.hash_g(bytes(m_prime) + sk.h_pk)))

                # Implicit rejection value (always computed).
                K_bar = bytearray(xof.hash_j(bytes(z) + ct, SHARED_SECRET_SIZE))

                ct_prime = self.pke.encrypt(
                    sk.inner_pk, bytes(m_prime), bytes(g_output[_HALF:])
                ).to_bytes()

                flag = hmac.compare_digest(ct, ct_prime)
                return _ct_select_bytes(flag, bytes(g_output[:_HALF]), bytes(K_bar))
            finally:
                secmem.secure_zero(m_prime)
                secmem.secure_zero(g_output)
                secmem.secure_zero(K_bar)

    # ── Serialisation ─────────────────────────────────────────────

    def public_key_from_bytes(self, data):
        return self.pke.public_key_from_bytes(data)

    def secret_key_from_bytes(self, data):
        """Decode sk_pke || pk || H(pk) || z, checking the stored hash."""
        sk_bytes, pk_bytes, h_pk, z = encoding.split(
            data, [self.pke.secret_key_size, self.pke.public_key_size, _HALF, _HALF]
        )
        if not hmac.compare_digest(xof.hash_h(pk_bytes), h_pk):
            raise MalformedInput("decapsulation key failed the public-key hash check")
        return KemSecretKey(
            self.pke.secret_key_from_bytes(sk_bytes),
            self.pke.public_key_from_bytes(pk_bytes),
            h_pk,
            z,
        )

    def _public_key(self, pk):
        if isinstance(pk, (bytes, bytearray)):
            return self.pke.public_key_from_bytes(pk)
        return pk
