# Copyright (c) 2026 Signer — MIT License

"""Number Theoretic Transform over Z_q[X]/(X^n + 1).

One engine serves both families of parameter sets:

  * Complete NTT (q ≡ 1 mod 2n, e.g. q = 8380417):  log2(n) butterfly
    layers down to single coefficients; multiplication in the NTT domain
    is n independent products.
  * Incomplete NTT (q ≡ 1 mod n only, e.g. q = 3329):  log2(n) - 1 layers
    down to degree-1 pairs; multiplication in the NTT domain is n/2
    products of linear polynomials modulo (X^2 - gamma).

The root of unity is the smallest primitive 2^(layers+1)-th root modulo q,
which gives the usual zeta = 17 for q = 3329.  Tables are computed once per
engine and never mutated.

The engine works on plain coefficient lists; the domain-tagged wrappers in
``poly`` are the public entry point.
"""

from .errors import InvalidParameter
from .field import ModularField


def _bitrev(x, bits):
    """Reverse the lower `bits` bits of an integer."""
    r = 0
    for _ in range(bits):
        r = (r << 1) | (x & 1)
        x >>= 1
    return r


def _find_root(q, order):
    """Smallest primitive `order`-th root of unity mod q (order a power of 2).

    For a power-of-two order, z is primitive exactly when z^(order/2) = -1.
    """
    half = order >> 1
    for z in range(2, q):
        if pow(z, half, q) == q - 1:
            return z
    raise InvalidParameter(f"no primitive {order}-th root of unity mod {q}")


class NttEngine:
    """Precomputed NTT tables for one (q, n) pair."""

    def __init__(self, q, n):
        if not isinstance(n, int) or n < 4 or n & (n - 1):
            raise InvalidParameter(f"ring degree must be a power of two >= 4, got {n!r}")
        self.field = ModularField(q)
        self.q = q
        self.n = n
        log_n = n.bit_length() - 1
        if (q - 1) % (2 * n) == 0:
            self.complete = True
            self.layers = log_n
        elif (q - 1) % n == 0:
            self.complete = False
            self.layers = log_n - 1
        else:
            raise InvalidParameter(
                f"modulus {q} has no primitive {n}-th root of unity "
                f"(q - 1 must be divisible by {n})"
            )
        self.root = _find_root(q, 1 << (self.layers + 1))
        # zetas[i] = root^bitrev(i), i in [0, 2^layers).  Index 0 is unused.
        self.zetas = tuple(
            self.field.pow(self.root, _bitrev(i, self.layers))
            for i in range(1 << self.layers)
        )
        self.scale = self.field.inv(1 << self.layers)
        # Smallest butterfly block: 1 for complete, 2 for incomplete.
        self._min_len = n >> self.layers

    def __repr__(self):
        kind = "complete" if self.complete else "incomplete"
        return f"NttEngine(q={self.q}, n={self.n}, {kind}, root={self.root})"

    def forward(self, coeffs):
        """Forward NTT (Cooley-Tukey, bit-reversed zetas). Returns a new list."""
        f = list(coeffs)
        n = self.n
        q = self.q
        zetas = self.zetas
        bm = self.field.barrett_mult
        bs = self.field.barrett_shift
        k = 1
        length = n >> 1
        while length >= self._min_len:
            start = 0
            while start < n:
                zeta = zetas[k]
                k += 1
                for j in range(start, start + length):
                    # Barrett reduction of zeta * f[j+length]
                    x = zeta * f[j + length]
                    t = x - ((x * bm) >> bs) * q
                    t -= q * (1 + ((t - q) >> 63))
                    r = f[j] - t
                    f[j + length] = r - (r >> 63) * q
                    s = f[j] + t
                    f[j] = s - q * (1 + ((s - q) >> 63))
                start += 2 * length
            length >>= 1
        return f

    def inverse(self, coeffs):
        """Inverse NTT (Gentleman-Sande) including the final 1/2^layers scaling."""
        a = list(coeffs)
        n = self.n
        q = self.q
        zetas = self.zetas
        bm = self.field.barrett_mult
        bs = self.field.barrett_shift
        k = (1 << self.layers) - 1
        length = self._min_len
        while length < n:
            start = 0
            while start < n:
                zeta = zetas[k]
                k -= 1
                for j in range(start, start + length):
                    t = a[j]
                    s = t + a[j + length]
                    a[j] = s - q * (1 + ((s - q) >> 63))
                    diff = a[j + length] - t
                    diff -= (diff >> 63) * q
                    x = zeta * diff
                    r = x - ((x * bm) >> bs) * q
                    a[j + length] = r - q * (1 + ((r - q) >> 63))
                start += 2 * length
            length <<= 1
        scale = self.scale
        barrett = self.field.barrett
        return [barrett(x * scale) for x in a]

    def pointwise_multiply(self, f, g):
        """Multiply two NTT-domain coefficient lists."""
        barrett = self.field.barrett
        if self.complete:
            return [barrett(a * b) for a, b in zip(f, g)]
        q = self.q
        zetas = self.zetas
        quarter = self.n >> 2
        h = [0] * self.n
        for i in range(quarter):
            z0 = zetas[quarter + i]
            h[4*i], h[4*i+1] = self._basecase(
                f[4*i], f[4*i+1], g[4*i], g[4*i+1], z0)
            h[4*i+2], h[4*i+3] = self._basecase(
                f[4*i+2], f[4*i+3], g[4*i+2], g[4*i+3], q - z0)
        return h

    def _basecase(self, a0, a1, b0, b1, gamma):
        """(a0 + a1*X)(b0 + b1*X) mod (X^2 - gamma)."""
        barrett = self.field.barrett
        add = self.field.add
        c0 = add(barrett(a0 * b0), barrett(barrett(a1 * b1) * gamma))
        c1 = add(barrett(a0 * b1), barrett(a1 * b0))
        return c0, c1
