"""
Polynomial Ring Operations
Arithmetic in R_q = Z_q[X]/(X^N + 1) on int64 coefficient vectors.
"""

import numpy as np


class PolynomialRing:
    def __init__(self, N, q):
        if N <= 0 or N & (N - 1) != 0:
            raise ValueError("N must be a power of 2")
        self.N = N
        self.q = q

    def add(self, a, b):
        return (a + b) % self.q

    def sub(self, a, b):
        return (a - b) % self.q

    def neg(self, a):
        return (-a) % self.q

    def mul_scalar(self, a, scalar):
        # object dtype keeps the product exact before the modulo
        result = (a.astype(object) * scalar) % self.q
        return result.astype(np.int64)

    def negacyclic(self, conv):
        """Fold a full convolution back into N coefficients using X^N = -1."""
        result = np.zeros(self.N, dtype=object)
        head = min(len(conv), self.N)
        result[:head] += conv[:head]
        tail = conv[self.N:]
        result[:len(tail)] -= tail
        return result

    def mul_exact(self, a, b):
        """Product in Z[X]/(X^N + 1) without reduction mod q."""
        return self.negacyclic(np.convolve(a.astype(object), b.astype(object)))

    def mul(self, a, b):
        return (self.mul_exact(a, b) % self.q).astype(np.int64)

    def decompose(self, a, base_bits):
        """Split coefficients in [0, q) into base 2^base_bits digits, least significant first."""
        mask = (1 << base_bits) - 1
        digits = []
        for shift in range(0, self.q.bit_length(), base_bits):
            digits.append((a >> shift) & mask)
        return digits

    def random_uniform(self, size=None):
        if size is None: size = self.N
        return np.random.randint(0, self.q, size=size, dtype=np.int64)

    def random_ternary(self):
        return np.random.choice([-1, 0, 1], size=self.N).astype(np.int64)


class DiscreteGaussian:
    def __init__(self, sigma, N):
        self.sigma = sigma
        self.N = N

    def sample(self):
        samples = np.random.normal(0, self.sigma, self.N)
        return np.round(samples).astype(np.int64)

    def sample_bounded(self, bound):
        samples = self.sample()
        return np.clip(samples, -bound, bound)
