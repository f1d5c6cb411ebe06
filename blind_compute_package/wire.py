"""
Wire formats shared by the server and the client.

Ciphertexts and relinearization keys travel as numpy .npz archives loaded with
allow_pickle=False, so an upload can only ever produce integer arrays.
Programs travel as JSON validated by pydantic.
"""
import io
import zipfile
from typing import Literal

import numpy as np
from pydantic import BaseModel, Field

from blind_compute_package.custom_fhe.ciphertext import Ciphertext
from blind_compute_package.custom_fhe.keys import RelinearizationKey
from blind_compute_package.program import Arg, BinaryOp, Opcode, Program

PARAM_NAMES = ('N', 't', 'q')


def _pack_params(params):
    return np.array([params[name] for name in PARAM_NAMES], dtype=np.int64)


def _unpack_params(arr):
    if arr.shape != (len(PARAM_NAMES),):
        raise ValueError(f"Bad parameter block: {arr!r}")
    params = {name: int(v) for name, v in zip(PARAM_NAMES, arr)}
    N, t, q = params['N'], params['t'], params['q']
    if N <= 0 or N & (N - 1) != 0:
        raise ValueError(f"N must be a positive power of 2, got {N}")
    if t < 2 or q <= t:
        raise ValueError(f"Need 2 <= t < q, got t={t}, q={q}")
    return params


def _save(**arrays):
    buf = io.BytesIO()
    np.savez(buf, **arrays)
    return buf.getvalue()


def _load(data):
    try:
        loaded = np.load(io.BytesIO(data), allow_pickle=False)
        if not isinstance(loaded, np.lib.npyio.NpzFile):
            raise ValueError("expected an .npz archive")
        with loaded as archive:
            return {name: archive[name] for name in archive.files}
    except (OSError, ValueError, zipfile.BadZipFile, EOFError) as e:
        raise ValueError(f"Not a valid archive: {e}") from e


def _polys(arr, N, name):
    if arr.dtype != np.int64 or arr.ndim != 2 or arr.shape[1] != N:
        raise ValueError(f"{name}: expected int64 array of shape (k, {N}), got {arr.dtype} {arr.shape}")
    return [row.copy() for row in arr]


def dumps_ciphertexts(ciphertexts):
    arrays = {'count': np.array(len(ciphertexts), dtype=np.int64)}
    for i, ct in enumerate(ciphertexts):
        arrays[f'ct{i}'] = np.stack(ct.get_components()).astype(np.int64)
        arrays[f'params{i}'] = _pack_params(ct.params)
    return _save(**arrays)


def loads_ciphertexts(data):
    arrays = _load(data)
    try:
        count = int(arrays['count'])
        ciphertexts = []
        for i in range(count):
            params = _unpack_params(arrays[f'params{i}'])
            components = _polys(arrays[f'ct{i}'], params['N'], f'ct{i}')
            ciphertexts.append(Ciphertext(components, params=params))
    except KeyError as e:
        raise ValueError(f"Missing array {e} in ciphertext archive") from e
    return ciphertexts


def dumps_relin_key(relin_key):
    b = np.stack([k_b for k_b, _ in relin_key.get_components()])
    a = np.stack([k_a for _, k_a in relin_key.get_components()])
    return _save(b=b.astype(np.int64), a=a.astype(np.int64),
                 base_bits=np.array(relin_key.base_bits, dtype=np.int64),
                 params=_pack_params(relin_key.params))


def loads_relin_key(data):
    arrays = _load(data)
    try:
        params = _unpack_params(arrays['params'])
        b = _polys(arrays['b'], params['N'], 'b')
        a = _polys(arrays['a'], params['N'], 'a')
        base_bits = int(arrays['base_bits'])
    except KeyError as e:
        raise ValueError(f"Missing array {e} in relinearization key archive") from e
    if len(a) != len(b):
        raise ValueError("Relinearization key halves differ in length")
    return RelinearizationKey(list(zip(b, a)), base_bits, params=params)


class InstructionModel(BaseModel):
    op: Literal['arg', 'binary_op']
    index: int = Field(default=0, ge=0)


class ProgramModel(BaseModel):
    instructions: list[InstructionModel]
    indexed: bool = False

    @classmethod
    def from_program(cls, program: Program, indexed: bool = False) -> 'ProgramModel':
        instructions = []
        for inst in program:
            if inst.op == Opcode.ARG:
                instructions.append(InstructionModel(op='arg', index=inst.arg))
            else:
                instructions.append(InstructionModel(op='binary_op'))
        return cls(instructions=instructions, indexed=indexed)

    def to_program(self) -> Program:
        return Program(Arg(i.index) if i.op == 'arg' else BinaryOp for i in self.instructions)
