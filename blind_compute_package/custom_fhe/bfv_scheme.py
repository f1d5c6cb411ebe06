"""
BFV (Brakerski-Fan-Vercauteren) Encryption Scheme
Scaling by t/q on multiplication, digit decomposition on relinearization.
"""

import numpy as np
from .polynomial import PolynomialRing, DiscreteGaussian
from .keys import PublicKey, SecretKey, RelinearizationKey
from .ciphertext import Ciphertext, Plaintext


class BFVScheme:
    def __init__(self, N=4096, t=4096, q_bits=60, sigma=3.2, base_bits=16):
        self.N = N
        self.t = t
        self.q = (1 << q_bits) - 1
        self.sigma = sigma
        self.poly_ring = PolynomialRing(N, self.q)
        self.gaussian = DiscreteGaussian(sigma, N)
        self.delta = self.q // self.t

        # Relinearization splits c2 into digits of base_bits each
        # so that key noise is multiplied by small values only
        self.base_bits = base_bits

        self.secret_key = None
        self.public_key = None
        self.relin_key = None

        print(f"BFV Parameters: N={N}, t={t}, q≈2^{q_bits}")
        print(f"  Decomposition Base T=2^{base_bits}")

    @property
    def params(self):
        return {'N': self.N, 't': self.t, 'q': self.q}

    def _error(self):
        return self.gaussian.sample_bounded(bound=6 * int(self.sigma))

    def key_generation(self):
        s = self.poly_ring.random_ternary()
        self.secret_key = SecretKey(s)
        a = self.poly_ring.random_uniform()
        e = self._error()
        # b = -(as + e)
        a_s = self.poly_ring.mul(a, s)
        b = self.poly_ring.neg(self.poly_ring.add(a_s, e))

        self.public_key = PublicKey(b, a)
        return self.secret_key, self.public_key

    def _encrypt_poly_internal(self, poly_msg):
        """Encrypt a polynomial under the secret key (used for RelinKey)"""
        s = self.secret_key.get_polynomial()
        a = self.poly_ring.random_uniform()
        e = self._error()

        # b = -(as + e) + message
        a_s = self.poly_ring.mul(a, s)
        noise = self.poly_ring.add(a_s, e)
        b = self.poly_ring.add(self.poly_ring.neg(noise), poly_msg)
        return (b, a)

    def generate_relin_key(self):
        if self.secret_key is None: raise ValueError("Keys not generated")
        s = self.secret_key.get_polynomial()
        s_squared = self.poly_ring.mul(s, s)

        components = []
        for shift in range(0, self.q.bit_length(), self.base_bits):
            scaled = self.poly_ring.mul_scalar(s_squared, 1 << shift)
            components.append(self._encrypt_poly_internal(scaled))

        self.relin_key = RelinearizationKey(components, self.base_bits, params=self.params)
        return self.relin_key

    def encrypt(self, plaintext):
        if self.public_key is None: raise ValueError("No Public Key")
        m = plaintext.get_poly()
        pk0, pk1 = self.public_key.get_components()

        u = self.poly_ring.random_ternary()
        e1 = self._error()
        e2 = self._error()

        # c0 = pk0*u + e1 + delta*m
        c0 = self.poly_ring.add(self.poly_ring.mul(pk0, u), e1)
        c0 = self.poly_ring.add(c0, self.poly_ring.mul_scalar(m, self.delta))

        # c1 = pk1*u + e2
        c1 = self.poly_ring.add(self.poly_ring.mul(pk1, u), e2)

        return Ciphertext([c0, c1], params=self.params)

    def decrypt(self, ciphertext):
        if self.secret_key is None: raise ValueError("No Secret Key")
        self._check_params(ciphertext)

        components = ciphertext.get_components()
        s = self.secret_key.get_polynomial()

        # noisy_m = c0 + c1*s (+ c2*s^2 for an unrelinearized product)
        noisy_m = components[0]
        s_power = s
        for c in components[1:]:
            noisy_m = self.poly_ring.add(noisy_m, self.poly_ring.mul(c, s_power))
            s_power = self.poly_ring.mul(s_power, s)

        # round(noisy * t / q)
        noisy_obj = noisy_m.astype(object)
        scaled = (noisy_obj * self.t + (self.q // 2)) // self.q

        m = scaled.astype(np.int64) % self.t
        return Plaintext(m, params=self.params)

    def _check_params(self, *ciphertexts):
        for ct in ciphertexts:
            if ct.params and ct.params != self.params:
                raise ValueError(f"Ciphertext parameters {ct.params} do not match scheme {self.params}")

    def _aligned(self, ct1, ct2):
        self._check_params(ct1, ct2)
        size = max(ct1.size, ct2.size)
        zero = np.zeros(self.N, dtype=np.int64)
        c1 = ct1.get_components() + [zero] * (size - ct1.size)
        c2 = ct2.get_components() + [zero] * (size - ct2.size)
        return c1, c2

    def add(self, ct1, ct2):
        c1, c2 = self._aligned(ct1, ct2)
        return Ciphertext([self.poly_ring.add(a, b) for a, b in zip(c1, c2)], params=self.params)

    def sub(self, ct1, ct2):
        c1, c2 = self._aligned(ct1, ct2)
        return Ciphertext([self.poly_ring.sub(a, b) for a, b in zip(c1, c2)], params=self.params)

    def multiply(self, ct1, ct2):
        """Homomorphic Multiplication with scaling by t/q"""
        self._check_params(ct1, ct2)
        if ct1.size != 2 or ct2.size != 2:
            raise ValueError("Multiplication expects relinearized (2-component) ciphertexts")
        c1_0, c1_1 = ct1.get_components()
        c2_0, c2_1 = ct2.get_components()

        def mul_scale(*pairs):
            res = sum(self.poly_ring.mul_exact(p1, p2) for p1, p2 in pairs)
            # (val * t + q/2) // q
            val = (res * self.t + (self.q // 2)) // self.q
            return (val % self.q).astype(np.int64)

        d0 = mul_scale((c1_0, c2_0))
        d1 = mul_scale((c1_0, c2_1), (c1_1, c2_0))
        d2 = mul_scale((c1_1, c2_1))

        return Ciphertext([d0, d1, d2], params=self.params)

    def relinearize(self, ciphertext, relin_key=None):
        """Relinearization with base 2^base_bits digit decomposition"""
        if ciphertext.size != 3: return ciphertext
        relin_key = relin_key or self.relin_key
        if relin_key is None: raise ValueError("No Relinearization Key")

        d0, d1, d2 = ciphertext.get_components()
        digits = self.poly_ring.decompose(d2, relin_key.base_bits)
        keys = relin_key.get_components()
        if len(digits) != len(keys):
            raise ValueError(f"Relinearization key has {len(keys)} digits, expected {len(digits)}")

        # c0 = d0 + sum(digit_i * k_i_b), c1 = d1 + sum(digit_i * k_i_a)
        new_c0, new_c1 = d0, d1
        for digit, (k_b, k_a) in zip(digits, keys):
            new_c0 = self.poly_ring.add(new_c0, self.poly_ring.mul(digit, k_b))
            new_c1 = self.poly_ring.add(new_c1, self.poly_ring.mul(digit, k_a))

        return Ciphertext([new_c0, new_c1], params=ciphertext.params)

    def encode(self, values):
        if isinstance(values, int): values = [values]
        poly = np.zeros(self.N, dtype=np.int64)
        values = np.array(values, dtype=np.int64)
        count = min(len(values), self.N)
        poly[:count] = values[:count] % self.t
        return Plaintext(poly, params=self.params)

    def decode(self, pt):
        return int(pt.get_poly()[0] % self.t)
