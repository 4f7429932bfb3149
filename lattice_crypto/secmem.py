# Copyright (c) 2026 Signer — MIT License

"""Secure handling of secret byte buffers (libsodium via PyNaCl).

sodium_memzero:  Compiler-resistant secure zeroing — prevents dead-store
                 elimination that could leave secrets in freed memory.
sodium_mlock:    Locks pages so the OS never swaps secret key material
                 to disk (swap partition / pagefile).
sodium_munlock:  Unlocks + zeros the pages on release.

Only mutable buffers (bytearray / memoryview) can be wiped; callers keep
secret intermediates in bytearrays for that reason.  Immutable objects are
silently skipped.
"""

from contextlib import contextmanager

from nacl._sodium import ffi as _ffi, lib as _lib


def _is_buffer(buf):
    return isinstance(buf, (bytearray, memoryview)) and len(buf) > 0


def secure_zero(buf):
    """Securely wipe a mutable buffer."""
    if _is_buffer(buf):
        _lib.sodium_memzero(_ffi.from_buffer(buf), len(buf))


def mlock(buf):
    """Lock memory pages to prevent swapping to disk."""
    if _is_buffer(buf):
        _lib.sodium_mlock(_ffi.from_buffer(buf), len(buf))


def munlock(buf):
    """Unlock memory pages (also zeros the region)."""
    if _is_buffer(buf):
        _lib.sodium_munlock(_ffi.from_buffer(buf), len(buf))


@contextmanager
def locked(*bufs):
    """Lock `bufs` for the duration of the block, then unlock and wipe them.

    Secrets are wiped even when the block raises.
    """
    for b in bufs:
        mlock(b)
    try:
        yield bufs
    finally:
        for b in bufs:
            munlock(b)
            secure_zero(b)
