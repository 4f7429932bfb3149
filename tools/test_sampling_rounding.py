# Copyright (c) 2026 Signer — MIT License

"""Test suite for samplers, bit packing, XOF helpers and rounding.

Covers:
    - XOF stream consistency with hashlib SHAKE output
    - Bit packing round trips and MalformedInput on bad buffers
    - Uniform / CBD / mask / challenge samplers: ranges and determinism
    - Compress/Decompress bounded error
    - Power2Round and Decompose reconstruction, including the
      wraparound edge at r = q - 1
    - MakeHint / UseHint agreement (exhaustive on a small modulus)

Run from the project root:
    python -m tools.test_sampling_rounding
"""

import hashlib
import os
import random
import sys
import time
import unittest

# Ensure project root is on the import path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from lattice_crypto import encoding, xof
from lattice_crypto.errors import DomainError, InvalidParameter, MalformedInput
from lattice_crypto.params import DILITHIUM_2, DILITHIUM_3
from lattice_crypto.poly import NttPoly, PolyVector, get_ring
from lattice_crypto.rounding import (
    compress, decompress, compress_poly, decompress_poly,
    power2_round, power2_round_vector,
    decompose, high_bits, low_bits, make_hint, use_hint,
    high_bits_vector, low_bits_norm, make_hint_vector, use_hint_vector, hint_weight,
)
from lattice_crypto.sampling import (
    sample_uniform, sample_uniform_ntt, expand_matrix,
    centered_binomial, sample_cbd, sample_mask, challenge_in_ball,
)

_KYBER_Q = 3329
_DQ = 8380417


class TestXof(unittest.TestCase):
    """absorb/squeeze streams and fixed-output helpers."""

    def test_stream_matches_digest(self):
        """Consecutive reads concatenate to one long SHAKE output."""
        for kind, ctor in (("shake128", hashlib.shake_128), ("shake256", hashlib.shake_256)):
            stream = xof.absorb(b"lattice", kind)
            out = xof.squeeze(stream, 10) + xof.squeeze(stream, 500) + xof.squeeze(stream, 3)
            self.assertEqual(out, ctor(b"lattice").digest(513))

    def test_streams_are_independent(self):
        a = xof.absorb(b"seed")
        b = xof.absorb(b"seed")
        a.read(64)
        self.assertEqual(b.read(32), hashlib.shake_256(b"seed").digest(32))

    def test_unknown_xof(self):
        with self.assertRaises(ValueError):
            xof.absorb(b"", "shake512")

    def test_prf(self):
        seed = bytes(range(32))
        self.assertEqual(xof.prf(seed, 258, 16),
                         hashlib.shake_256(seed + b"\x02\x01").digest(16))
        self.assertEqual(xof.prf_stream(seed, 7).read(40), xof.prf(seed, 7, 40))

    def test_hash_g_split(self):
        rho, sigma = xof.hash_g(b"x")
        self.assertEqual(rho + sigma, hashlib.sha3_512(b"x").digest())
        self.assertEqual(xof.hash_h(b"x"), hashlib.sha3_256(b"x").digest())
        self.assertEqual(len(xof.hash_j(b"x")), 32)


class TestEncoding(unittest.TestCase):
    """Fixed-width bit packing."""

    def test_roundtrip_widths(self):
        rng = random.Random(42)
        for bits in (1, 3, 4, 10, 12, 13, 18, 20, 23):
            values = [rng.randrange(1 << bits) for _ in range(256)]
            packed = encoding.pack(values, bits)
            self.assertEqual(len(packed), encoding.packed_size(256, bits))
            self.assertEqual(encoding.unpack(packed, 256, bits), values, f"bits={bits}")

    def test_unpack_wrong_length(self):
        for bits in (1, 4, 10, 12):
            size = encoding.packed_size(256, bits)
            with self.assertRaises(MalformedInput, msg=f"bits={bits} short"):
                encoding.unpack(b"\x00" * (size - 1), 256, bits)
            with self.assertRaises(MalformedInput, msg=f"bits={bits} long"):
                encoding.unpack(b"\x00" * (size + 1), 256, bits)

    def test_unpack_nonzero_padding(self):
        # 3 values * 3 bits = 9 bits in 2 bytes; bit 9 is padding.
        self.assertEqual(encoding.unpack(b"\xff\x01", 3, 3), [7, 7, 7])
        with self.assertRaises(MalformedInput):
            encoding.unpack(b"\xff\x03", 3, 3)

    def test_signed_roundtrip(self):
        q = _DQ
        values = [-2, -1, 0, 1, 2]
        packed = encoding.pack_signed(values, q, 2, 3)
        self.assertEqual(encoding.unpack_signed(packed, 5, q, 2, 3),
                         [v % q for v in values])

    def test_signed_bound(self):
        packed = encoding.pack([5, 0, 0, 0, 0, 0, 0, 0], 3)
        with self.assertRaises(MalformedInput):
            encoding.unpack_signed(packed, 8, _DQ, 2, 3, bound=4)

    def test_split(self):
        self.assertEqual(encoding.split(b"abcdef", [1, 2, 3]), [b"a", b"bc", b"def"])
        with self.assertRaises(MalformedInput):
            encoding.split(b"abcdef", [1, 2])


class TestSamplers(unittest.TestCase):
    """Uniform, CBD, mask and challenge samplers."""

    @classmethod
    def setUpClass(cls):
        cls.kyber = get_ring(_KYBER_Q, 256)
        cls.dilithium = get_ring(_DQ, 256)

    def test_sample_uniform_range(self):
        stream = xof.absorb(b"uniform")
        for bound in (1, 2, 3, 5, 100, _KYBER_Q):
            for _ in range(200):
                x = sample_uniform(stream, bound)
                self.assertTrue(0 <= x < bound)

    def test_sample_uniform_bad_bound(self):
        with self.assertRaises(InvalidParameter):
            sample_uniform(xof.absorb(b""), 0)

    def test_sample_uniform_ntt(self):
        seed = b"\x00" * 32
        a = sample_uniform_ntt(self.kyber, seed, 0, 0)
        self.assertIsInstance(a, NttPoly)
        self.assertTrue(all(0 <= c < _KYBER_Q for c in a))
        self.assertEqual(a, sample_uniform_ntt(self.kyber, seed, 0, 0))
        self.assertNotEqual(a, sample_uniform_ntt(self.kyber, seed, 0, 1))

    def test_expand_matrix_transpose(self):
        rho = b"\xab" * 32
        a = expand_matrix(self.kyber, rho, 2, 3)
        at = expand_matrix(self.kyber, rho, 2, 3, transpose=True)
        self.assertEqual(a.shape, (2, 3))
        self.assertEqual(at, a.transpose())

    def test_cbd_range(self):
        for eta in (2, 3, 4):
            valid = {c % _KYBER_Q for c in range(-eta, eta + 1)}
            f = centered_binomial(self.kyber, os.urandom(64 * eta), eta)
            self.assertEqual(len(f), 256)
            for c in f:
                self.assertIn(c, valid, f"CBD_{eta} coefficient {c} out of range")

    def test_cbd_known_values(self):
        # eta=2: 4 bits per coefficient; 0b0011 -> 2 - 0, 0b1100 -> 0 - 2
        data = bytes([0xC3]) + bytes(127)
        f = centered_binomial(self.kyber, data, 2)
        self.assertEqual(f.centered()[:3], [2, -2, 0])

    def test_cbd_wrong_length(self):
        with self.assertRaises(MalformedInput):
            centered_binomial(self.kyber, b"\x00" * 127, 2)

    def test_cbd_deterministic(self):
        seed = b"\x55" * 32
        self.assertEqual(sample_cbd(self.kyber, seed, 3, 2), sample_cbd(self.kyber, seed, 3, 2))
        self.assertNotEqual(sample_cbd(self.kyber, seed, 3, 2), sample_cbd(self.kyber, seed, 4, 2))

    def test_mask_range(self):
        gamma1 = 1 << 17
        y = sample_mask(self.dilithium, b"\x01" * 64, 0, gamma1)
        self.assertLessEqual(y.infinity_norm(), gamma1 - 1)
        self.assertEqual(y, sample_mask(self.dilithium, b"\x01" * 64, 0, gamma1))

    def test_challenge_in_ball(self):
        for params in (DILITHIUM_2, DILITHIUM_3):
            c_tilde = bytes(range(params.c_tilde_bytes))
            c = challenge_in_ball(self.dilithium, c_tilde, params.tau)
            centered = c.centered()
            self.assertEqual(sum(1 for x in centered if x), params.tau)
            self.assertTrue(all(x in (-1, 0, 1) for x in centered))
            self.assertEqual(c, challenge_in_ball(self.dilithium, c_tilde, params.tau))

    def test_challenge_depends_on_seed(self):
        a = challenge_in_ball(self.dilithium, b"\x00" * 32, 39)
        b = challenge_in_ball(self.dilithium, b"\x01" + b"\x00" * 31, 39)
        self.assertNotEqual(a, b)

    def test_challenge_bad_weight(self):
        with self.assertRaises(InvalidParameter):
            challenge_in_ball(self.dilithium, b"\x00" * 32, 0)
        with self.assertRaises(InvalidParameter):
            challenge_in_ball(self.dilithium, b"\x00" * 32, 257)


class TestCompression(unittest.TestCase):
    """Compress / Decompress bounded error."""

    def test_compress_range(self):
        for bits in (1, 4, 5, 10, 11):
            for x in range(0, _KYBER_Q, 7):
                self.assertTrue(0 <= compress(x, _KYBER_Q, bits) < (1 << bits))

    def test_roundtrip_bounded_error(self):
        """Decompress(Compress(x)) is within round(q / 2^(bits+1)) of x.

        The bound is rounded on purpose. Both directions round, so the
        unrounded q / 2^(bits+1) is exceeded for q = 3329 at bits 8, 10
        and 11 (at bits=10 the worst error is 2 against 1.625).
        """
        for bits in (1, 4, 5, 10, 11):
            max_err = (_KYBER_Q + (1 << bits)) // (1 << (bits + 1))
            for x in range(_KYBER_Q):
                dc = decompress(compress(x, _KYBER_Q, bits), _KYBER_Q, bits)
                self.assertTrue(0 <= dc < _KYBER_Q)
                err = min((x - dc) % _KYBER_Q, (dc - x) % _KYBER_Q)
                self.assertLessEqual(err, max_err, f"bits={bits}, x={x}, err={err}")

    def test_poly_helpers(self):
        ring = get_ring(_KYBER_Q, 256)
        p = ring.from_coeffs(range(256))
        values = compress_poly(p, 10)
        self.assertEqual(len(values), 256)
        back = decompress_poly(ring, values, 10)
        self.assertLessEqual((p - back).infinity_norm(), 2)

    def test_requires_coefficient_domain(self):
        ring = get_ring(_KYBER_Q, 256)
        with self.assertRaises(DomainError):
            compress_poly(ring.ntt_zero(), 4)


class TestPower2Round(unittest.TestCase):

    def test_reconstruction(self):
        d = 13
        rng = random.Random(5)
        for r in [0, 1, 4095, 4096, 4097, 8191, 8192, _DQ - 1] + [rng.randrange(_DQ) for _ in range(500)]:
            r1, r0 = power2_round(r, d)
            self.assertEqual(r1 * (1 << d) + r0, r)
            self.assertTrue(-(1 << (d - 1)) < r0 <= (1 << (d - 1)), f"r={r}, r0={r0}")

    def test_vector(self):
        ring = get_ring(_DQ, 256)
        t = PolyVector([ring.from_coeffs(range(0, 256 * 30000, 30000))])
        t1, t0 = power2_round_vector(t, 13)
        for a, hi, lo in zip(t[0], t1[0], t0[0]):
            self.assertEqual((hi * 8192 + lo) % _DQ, a)


class TestDecompose(unittest.TestCase):
    """HighBits / LowBits and the wraparound rule."""

    def _check_all(self, q, gamma2):
        m = (q - 1) // (2 * gamma2)
        for r in range(q):
            r1, r0 = decompose(r, q, gamma2)
            self.assertTrue(0 <= r1 < m, f"r={r}, r1={r1}")
            self.assertTrue(-gamma2 <= r0 <= gamma2, f"r={r}, r0={r0}")
            self.assertEqual((r1 * 2 * gamma2 + r0) % q, r)
            self.assertEqual(high_bits(r, q, gamma2), r1)
            self.assertEqual(low_bits(r, q, gamma2), r0)

    def test_exhaustive_small_modulus(self):
        self._check_all(97, 8)
        self._check_all(97, 12)

    def test_wraparound_edge(self):
        """r = q - 1 maps to high part 0 with low part -1."""
        for gamma2 in ((_DQ - 1) // 88, (_DQ - 1) // 32):
            self.assertEqual(decompose(_DQ - 1, _DQ, gamma2), (0, -1))
            r1, r0 = decompose(_DQ - gamma2, _DQ, gamma2)
            self.assertEqual(r1, 0)
            self.assertEqual(r0, -gamma2)

    def test_boundaries(self):
        gamma2 = (_DQ - 1) // 32
        self.assertEqual(decompose(gamma2, _DQ, gamma2), (0, gamma2))
        self.assertEqual(decompose(gamma2 + 1, _DQ, gamma2), (1, -gamma2 + 1))
        self.assertEqual(decompose(0, _DQ, gamma2), (0, 0))


class TestHints(unittest.TestCase):
    """MakeHint / UseHint."""

    def test_agreement_exhaustive(self):
        """UseHint(MakeHint(z, r), r) == HighBits(r + z) for |z| <= gamma2."""
        q, gamma2 = 97, 8
        for r in range(q):
            for z in range(-gamma2, gamma2 + 1):
                h = make_hint(z % q, r, q, gamma2)
                self.assertEqual(use_hint(h, r, q, gamma2),
                                 high_bits((r + z) % q, q, gamma2), f"r={r}, z={z}")

    def test_agreement_dilithium(self):
        rng = random.Random(9)
        for gamma2 in ((_DQ - 1) // 88, (_DQ - 1) // 32):
            edges = [0, 1, gamma2, gamma2 + 1, _DQ - 1, _DQ - gamma2, _DQ - gamma2 - 1]
            for r in edges + [rng.randrange(_DQ) for _ in range(300)]:
                for z in (-gamma2, -1, 0, 1, gamma2, rng.randint(-gamma2, gamma2)):
                    h = make_hint(z % _DQ, r, _DQ, gamma2)
                    self.assertEqual(use_hint(h, r, _DQ, gamma2),
                                     high_bits((r + z) % _DQ, _DQ, gamma2))

    def test_zero_hint_is_high_bits(self):
        gamma2 = (_DQ - 1) // 88
        for r in (0, 5, _DQ - 1, 123456):
            self.assertEqual(use_hint(0, r, _DQ, gamma2), high_bits(r, _DQ, gamma2))

    def test_vector_forms(self):
        ring = get_ring(_DQ, 256)
        gamma2 = (_DQ - 1) // 88
        rng = random.Random(11)
        r = PolyVector([ring.from_coeffs(rng.randrange(_DQ) for _ in range(256)) for _ in range(2)])
        z = PolyVector([ring.from_coeffs(rng.randint(-50, 50) for _ in range(256)) for _ in range(2)])
        h = make_hint_vector(z, r, gamma2)
        self.assertEqual(use_hint_vector(h, r, gamma2), high_bits_vector(r + z, gamma2))
        self.assertEqual(hint_weight(h), sum(map(sum, h)))
        self.assertLessEqual(low_bits_norm(r, gamma2), gamma2)


# ── Runner ──────────────────────────────────────────────────────

if __name__ == "__main__":
    print("=" * 68)
    print("Sampling / Encoding / Rounding Test Suite")
    print("=" * 68)
    t0 = time.time()

    loader = unittest.TestLoader()
    suite = loader.loadTestsFromModule(sys.modules[__name__])
    runner = unittest.TextTestRunner(verbosity=2)
    result = runner.run(suite)

    elapsed = time.time() - t0
    print(f"\nCompleted in {elapsed:.1f}s")
    sys.exit(0 if result.wasSuccessful() else 1)
