"""
Client-side keypair: encrypts integers into operands and decrypts results.
Also supplies the homomorphic operations that get bound into evaluators.
"""
from typing import Protocol

from blind_compute_package.custom_fhe.bfv_scheme import BFVScheme
from blind_compute_package.custom_fhe.ciphertext import Ciphertext
from blind_compute_package.interpreter import compile_program
from blind_compute_package.program import Program, product_tree

# Defaults follow the reference parameters: degree 2048, plaintext modulus 2^8
DEFAULT_N = 2048
DEFAULT_T = 1 << 8
DEFAULT_Q_BITS = 60


class Keypair(Protocol):
    def encrypt(self, value: int) -> Ciphertext: ...

    def decrypt(self, ciphertext: Ciphertext) -> int: ...


class FheKeypair:
    def __init__(self, scheme: BFVScheme):
        if scheme.secret_key is None or scheme.relin_key is None:
            raise ValueError("Scheme has no keys; use FheKeypair.generate()")
        self.HE = scheme

    @classmethod
    def generate(cls, N=DEFAULT_N, t=DEFAULT_T, q_bits=DEFAULT_Q_BITS, sigma=3.2, base_bits=16):
        scheme = BFVScheme(N=N, t=t, q_bits=q_bits, sigma=sigma, base_bits=base_bits)
        scheme.key_generation()
        scheme.generate_relin_key()
        return cls(scheme)

    @property
    def params(self):
        return self.HE.params

    @property
    def public_key(self):
        return self.HE.public_key

    @property
    def relin_key(self):
        return self.HE.relin_key

    def encrypt(self, value: int) -> Ciphertext:
        return self.HE.encrypt(self.HE.encode([value]))

    def encrypt_all(self, values) -> list[Ciphertext]:
        return [self.encrypt(v) for v in values]

    def decrypt(self, ciphertext: Ciphertext) -> int:
        return self.HE.decode(self.HE.decrypt(ciphertext))

    def multiply(self, ct1: Ciphertext, ct2: Ciphertext) -> Ciphertext:
        return self.HE.relinearize(self.HE.multiply(ct1, ct2))

    def add(self, ct1: Ciphertext, ct2: Ciphertext) -> Ciphertext:
        return self.HE.add(ct1, ct2)

    def sub(self, ct1: Ciphertext, ct2: Ciphertext) -> Ciphertext:
        return self.HE.sub(ct1, ct2)


TRIPLE_PRODUCT = Program.from_expr(product_tree(3))


def triple_product(a, b, c, op):
    """mul(mul(a, b), c) run through the interpreter."""
    return compile_program(TRIPLE_PRODUCT, op).run([a, b, c])
