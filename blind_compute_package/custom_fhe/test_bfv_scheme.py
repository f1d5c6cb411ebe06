"""
Test Suite for the BFV scheme
Small ring degree keeps the pure Python polynomial products fast.
"""
import numpy as np
import pytest

from blind_compute_package.custom_fhe.bfv_scheme import BFVScheme
from blind_compute_package.custom_fhe.ciphertext import Ciphertext
from blind_compute_package.custom_fhe.polynomial import PolynomialRing


@pytest.fixture(scope="module")
def fhe():
    scheme = BFVScheme(N=16, t=256, q_bits=60, base_bits=16)
    scheme.key_generation()
    scheme.generate_relin_key()
    return scheme


def roundtrip(fhe, ct):
    return fhe.decode(fhe.decrypt(ct))


def test_ring_rejects_bad_degree():
    with pytest.raises(ValueError):
        PolynomialRing(12, 97)


def test_negacyclic_multiplication():
    ring = PolynomialRing(4, 97)
    x = np.array([0, 1, 0, 0], dtype=np.int64)
    x3 = np.array([0, 0, 0, 1], dtype=np.int64)
    # X * X^3 = X^4 = -1
    assert ring.mul(x, x3).tolist() == [96, 0, 0, 0]


def test_decompose_recombines():
    ring = PolynomialRing(8, (1 << 20) - 1)
    a = np.random.randint(0, ring.q, size=8, dtype=np.int64)
    digits = ring.decompose(a, 6)
    assert len(digits) == 4
    total = sum(d.astype(object) * (1 << (6 * i)) for i, d in enumerate(digits))
    assert total.tolist() == a.tolist()


def test_basic_operations(fhe):
    """Test basic encryption/decryption"""
    for value in (0, 1, 42, 255):
        assert roundtrip(fhe, fhe.encrypt(fhe.encode(value))) == value

    ct1 = fhe.encrypt(fhe.encode(100))
    ct2 = fhe.encrypt(fhe.encode(120))
    assert roundtrip(fhe, fhe.add(ct1, ct2)) == 220
    assert roundtrip(fhe, fhe.sub(ct1, ct2)) == fhe.t - 20


@pytest.mark.parametrize("a,b,expected", [
    (5, 7, 35),
    (12, 8, 96),
    (3, 11, 33),
    (10, 10, 100),
    (2, 50, 100),
])
def test_multiplication(fhe, a, b, expected):
    ct1 = fhe.encrypt(fhe.encode(a))
    ct2 = fhe.encrypt(fhe.encode(b))

    ct_mult = fhe.multiply(ct1, ct2)
    assert ct_mult.size == 3
    # an unrelinearized product still decrypts
    assert roundtrip(fhe, ct_mult) == expected

    ct_mult = fhe.relinearize(ct_mult)
    assert ct_mult.size == 2
    assert roundtrip(fhe, ct_mult) == expected


def test_multiplication_wraps_mod_t(fhe):
    ct = fhe.multiply(fhe.encrypt(fhe.encode(20)), fhe.encrypt(fhe.encode(20)))
    assert roundtrip(fhe, fhe.relinearize(ct)) == 400 % fhe.t


def test_depth_two_product(fhe):
    ct = fhe.encrypt(fhe.encode(2))
    for v in (4, 10):
        ct = fhe.relinearize(fhe.multiply(ct, fhe.encrypt(fhe.encode(v))))
    assert roundtrip(fhe, ct) == 80


def test_multiply_requires_relinearized_inputs(fhe):
    ct = fhe.encrypt(fhe.encode(3))
    raw = fhe.multiply(ct, ct)
    with pytest.raises(ValueError):
        fhe.multiply(raw, ct)


def test_parameter_mismatch(fhe):
    ct = fhe.encrypt(fhe.encode(3))
    foreign = Ciphertext(ct.get_components(), params={'N': 16, 't': 128, 'q': fhe.q})
    with pytest.raises(ValueError):
        fhe.add(ct, foreign)


def test_missing_keys():
    scheme = BFVScheme(N=16, t=256, q_bits=60)
    with pytest.raises(ValueError):
        scheme.encrypt(scheme.encode(1))
    with pytest.raises(ValueError):
        scheme.generate_relin_key()
    with pytest.raises(ValueError):
        scheme.decrypt(Ciphertext([np.zeros(16), np.zeros(16)]))


def test_relinearize_without_key(fhe):
    scheme = BFVScheme(N=16, t=256, q_bits=60)
    ct = fhe.encrypt(fhe.encode(3))
    with pytest.raises(ValueError):
        scheme.relinearize(scheme.multiply(ct, ct))
    # a key passed explicitly is enough; the evaluator never needs the secret key
    relin = scheme.relinearize(scheme.multiply(ct, ct), fhe.relin_key)
    assert roundtrip(fhe, relin) == 9
