"""
Key containers for the BFV scheme.
The secret key never leaves the client; the public and relinearization
keys may be shared with an evaluating server.
"""


class SecretKey:
    def __init__(self, s):
        self.s = s

    def get_polynomial(self):
        return self.s


class PublicKey:
    def __init__(self, b, a):
        self.b = b
        self.a = a

    def get_components(self):
        return self.b, self.a


class RelinearizationKey:
    """Encryptions of (2^base_bits)^i * s^2, one (b, a) pair per digit."""

    def __init__(self, components, base_bits, params=None):
        self.components = list(components)
        self.base_bits = base_bits
        self.params = params or {}

    def get_components(self):
        return self.components

    def __len__(self):
        return len(self.components)
