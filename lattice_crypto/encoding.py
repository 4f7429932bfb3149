# Copyright (c) 2026 Signer — MIT License

"""Fixed-width little-endian bit packing.

All key, ciphertext and signature encodings in this package are built from
these helpers.  The formats are internal: round trips through
``pack``/``unpack`` are exact, but no external wire standard is matched.

Uses an integer bit-accumulator instead of materialising a bit list.
"""

from .errors import MalformedInput


def packed_size(count, bits):
    """Number of bytes needed for `count` values of `bits` bits each."""
    return (count * bits + 7) // 8


def pack(values, bits):
    """Pack non-negative ints into bytes, `bits` bits each (masked)."""
    mask = (1 << bits) - 1
    acc = 0          # running bit-accumulator
    bit_pos = 0      # current bit position in acc
    for v in values:
        acc |= (v & mask) << bit_pos
        bit_pos += bits
    return acc.to_bytes((bit_pos + 7) // 8, "little")


def unpack(data, count, bits):
    """Inverse of ``pack``.  Raises MalformedInput on a wrong-length buffer."""
    expected = packed_size(count, bits)
    if len(data) != expected:
        raise MalformedInput(
            f"unpack_{bits}: expected {expected} bytes, got {len(data)}"
        )
    mask = (1 << bits) - 1
    acc = int.from_bytes(data, "little")
    values = []
    for _ in range(count):
        values.append(acc & mask)
        acc >>= bits
    if acc:
        raise MalformedInput(f"unpack_{bits}: non-zero padding bits")
    return values


def pack_signed(values, q, offset, bits):
    """Pack centered coefficients as (offset - c) mod q in `bits` bits.

    Used for small secrets (offset = eta), t0 (offset = 2^(d-1)) and the
    signature response z (offset = gamma1).
    """
    return pack([(offset - c) % q for c in values], bits)


def unpack_signed(data, count, q, offset, bits, bound=None):
    """Inverse of ``pack_signed``.

    When `bound` is given, raw values above it are rejected as
    non-canonical (e.g. eta-packed secrets larger than 2*eta).
    """
    raw = unpack(data, count, bits)
    if bound is not None and any(r > bound for r in raw):
        raise MalformedInput(f"unpack_signed: value outside [0, {bound}]")
    return [(offset - r) % q for r in raw]


def split(data, sizes):
    """Cut `data` into consecutive chunks of the given sizes.

    Raises MalformedInput unless the sizes account for every byte.
    """
    total = sum(sizes)
    if len(data) != total:
        raise MalformedInput(f"expected {total} bytes, got {len(data)}")
    chunks = []
    offset = 0
    for size in sizes:
        chunks.append(bytes(data[offset:offset + size]))
        offset += size
    return chunks
