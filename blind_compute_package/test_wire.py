import io

import numpy as np
import pytest
from pydantic import ValidationError

from blind_compute_package.keypair import FheKeypair
from blind_compute_package.program import Arg, BinaryOp, Program
from blind_compute_package.wire import (
    ProgramModel, dumps_ciphertexts, dumps_relin_key, loads_ciphertexts, loads_relin_key,
)


@pytest.fixture(scope="module")
def keypair():
    return FheKeypair.generate(N=16, t=256, q_bits=60)


def test_ciphertexts_survive_transport(keypair):
    cts = keypair.encrypt_all([9, 0, 200])
    loaded = loads_ciphertexts(dumps_ciphertexts(cts))
    assert [keypair.decrypt(ct) for ct in loaded] == [9, 0, 200]
    assert loaded[0].params == keypair.params


def test_relin_key_survives_transport(keypair):
    key = loads_relin_key(dumps_relin_key(keypair.relin_key))
    assert key.base_bits == keypair.relin_key.base_bits
    assert len(key) == len(keypair.relin_key)
    ct = keypair.encrypt(6)
    product = keypair.HE.relinearize(keypair.HE.multiply(ct, ct), key)
    assert keypair.decrypt(product) == 36


def test_empty_ciphertext_list():
    assert loads_ciphertexts(dumps_ciphertexts([])) == []


def test_rejects_garbage():
    with pytest.raises(ValueError):
        loads_ciphertexts(b"not an archive")


def test_rejects_plain_npy():
    buf = io.BytesIO()
    np.save(buf, np.zeros(3, dtype=np.int64))
    with pytest.raises(ValueError):
        loads_ciphertexts(buf.getvalue())


def test_rejects_wrong_shape(keypair):
    buf = io.BytesIO()
    np.savez(buf, count=np.array(1), ct0=np.zeros((2, 8), dtype=np.int64),
             params0=np.array([16, 256, keypair.params['q']], dtype=np.int64))
    with pytest.raises(ValueError):
        loads_ciphertexts(buf.getvalue())


def test_rejects_missing_arrays():
    buf = io.BytesIO()
    np.savez(buf, count=np.array(2))
    with pytest.raises(ValueError):
        loads_ciphertexts(buf.getvalue())


def test_program_model_roundtrip():
    program = Program([Arg(0), Arg(1), BinaryOp, Arg(2), BinaryOp])
    model = ProgramModel.from_program(program, indexed=True)
    loaded = ProgramModel.model_validate_json(model.model_dump_json())
    assert loaded.indexed is True
    assert loaded.to_program() == program


def test_program_model_validation():
    with pytest.raises(ValidationError):
        ProgramModel.model_validate_json('{"instructions": [{"op": "push"}]}')
    with pytest.raises(ValidationError):
        ProgramModel.model_validate_json('{"instructions": [{"op": "arg", "index": -1}]}')


@pytest.mark.parametrize("params", [[12, 256, 1 << 20], [16, 1, 1 << 20], [16, 256, 256]])
def test_rejects_bad_parameters(params):
    buf = io.BytesIO()
    np.savez(buf, count=np.array(1), ct0=np.zeros((2, params[0]), dtype=np.int64),
             params0=np.array(params, dtype=np.int64))
    with pytest.raises(ValueError):
        loads_ciphertexts(buf.getvalue())
