# Copyright (c) 2026 Signer — MIT License

"""Hash / XOF collaborator (SHA-3 family from hashlib).

The lattice code never implements hashing itself.  It sees two shapes:

  * an extendable-output stream: ``absorb(data) -> XofStream`` followed
    by any number of ``squeeze(stream, n)`` calls, each returning the next
    n bytes of output;
  * fixed-output helpers for the roles the schemes need (H, G, J, PRF).

Every stream is a fresh object seeded only by the bytes passed to
``absorb``; nothing is shared between calls, so concurrent operations
never race on a generator.
"""

import hashlib
import struct

_XOFS = {
    "shake128": hashlib.shake_128,
    "shake256": hashlib.shake_256,
}

# SHAKE-128 rate in bytes; a natural first read size.
_MIN_READ = 168


class XofStream:
    """Sequential reader over SHAKE output."""

    __slots__ = ("_xof", "_buf", "_pos")

    def __init__(self, data, kind="shake256"):
        try:
            ctor = _XOFS[kind]
        except KeyError:
            raise ValueError(f"unknown XOF {kind!r}") from None
        self._xof = ctor(bytes(data))
        self._buf = b""
        self._pos = 0

    def read(self, length):
        """Next `length` bytes of output."""
        end = self._pos + length
        if end > len(self._buf):
            # digest(n) is a prefix of digest(m) for n < m, so re-squeezing
            # a longer buffer extends the stream consistently.
            self._buf = self._xof.digest(max(end, 2 * len(self._buf), _MIN_READ))
        out = self._buf[self._pos:end]
        self._pos = end
        return out


def absorb(data, kind="shake256"):
    """Start an output stream seeded by `data`."""
    return XofStream(data, kind)


def squeeze(stream, length):
    return stream.read(length)


# ── Fixed-output helpers ─────────────────────────────────────────

def shake256(data, length):
    return hashlib.shake_256(data).digest(length)


def hash_h(data):
    """H: SHA3-256, used for public-key hashes."""
    return hashlib.sha3_256(data).digest()


def hash_g(data):
    """G: SHA3-512 split into two 32-byte halves."""
    out = hashlib.sha3_512(data).digest()
    return out[:32], out[32:]


def hash_j(data, length=32):
    """J: SHAKE-256, used for the implicit-rejection key."""
    return hashlib.shake_256(data).digest(length)


def prf(seed, nonce, length):
    """PRF(seed, nonce) = SHAKE-256(seed || LE16(nonce))."""
    return hashlib.shake_256(seed + struct.pack("<H", nonce)).digest(length)


def prf_stream(seed, nonce):
    """Like ``prf`` but as an open-ended stream (for rejection samplers)."""
    return XofStream(seed + struct.pack("<H", nonce), "shake256")
