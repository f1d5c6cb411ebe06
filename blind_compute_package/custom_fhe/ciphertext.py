"""
Plaintext and Ciphertext containers.
"""

import numpy as np


class Plaintext:
    def __init__(self, poly, params=None):
        self.poly = np.asarray(poly, dtype=np.int64)
        self.params = params or {}

    def get_poly(self):
        return self.poly


class Ciphertext:
    """
    A list of polynomials (c0, c1[, c2]) in R_q.
    Fresh and relinearized ciphertexts have two components, a raw product has three.
    """

    def __init__(self, components, params=None):
        self.components = [np.asarray(c, dtype=np.int64) for c in components]
        self.params = params or {}

    @property
    def size(self):
        return len(self.components)

    def get_components(self):
        return self.components

    def __repr__(self):
        return f"Ciphertext(size={self.size}, params={self.params})"
