# server_api.py
from functools import lru_cache
from typing import Optional

from fastapi import FastAPI, UploadFile, File, Form, HTTPException
from fastapi.responses import Response

from blind_compute_package.custom_fhe.bfv_scheme import BFVScheme
from blind_compute_package.interpreter import EvalError, compile_program
from blind_compute_package.wire import ProgramModel, dumps_ciphertexts, loads_ciphertexts, loads_relin_key

app = FastAPI()

OPERATIONS = ("mul", "add", "sub")

print("Initializing FHE Backend...")


@lru_cache(maxsize=8)
def scheme_for(N, t, q):
    # The server DOES NOT hold keys, just N, t, q.
    return BFVScheme(N=N, t=t, q_bits=q.bit_length())


def bind_operation(scheme, op, relin_key):
    if op == "mul":
        if relin_key is None:
            raise HTTPException(status_code=400, detail="Multiplication needs relin_key_file")
        return lambda a, b: scheme.relinearize(scheme.multiply(a, b), relin_key)
    if op == "add":
        return scheme.add
    if op == "sub":
        return scheme.sub
    raise HTTPException(status_code=400, detail=f"Unknown operation {op!r}, expected one of {OPERATIONS}")


@app.get("/")
def home():
    return {"status": "FHE Server Online", "backend": "Pure Python", "operations": list(OPERATIONS)}


@app.post("/evaluate")
def blind_evaluate(
        program: str = Form(...),
        op: str = Form("mul"),
        operands_file: UploadFile = File(...),
        relin_key_file: Optional[UploadFile] = File(None),
):
    """
    Receives: Program + Encrypted Operands (+ Relinearization Key)
    Returns: One Encrypted Result
    """
    # 1. Load the program and the binary archives
    try:
        model = ProgramModel.model_validate_json(program)
        operands = loads_ciphertexts(operands_file.file.read())
        relin_key = loads_relin_key(relin_key_file.file.read()) if relin_key_file is not None else None
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    if not operands:
        raise HTTPException(status_code=400, detail="No operands supplied")
    params = operands[0].params
    if any(ct.params != params for ct in operands) or (relin_key is not None and relin_key.params != params):
        raise HTTPException(status_code=400, detail="Operands and key use different parameters")

    try:
        scheme = scheme_for(params['N'], params['t'], params['q'])
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    evaluator = compile_program(model.to_program(), bind_operation(scheme, op, relin_key), indexed=model.indexed)

    print(f"Evaluating {len(evaluator.program)} instructions over {len(operands)} operands ({op})...")

    # 2. Run the program blindly
    try:
        result = evaluator.run(operands)
    except EvalError as e:
        raise HTTPException(status_code=422, detail={"error": type(e).__name__, "message": str(e)})
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    # 3. Serialize and Return Result
    return Response(content=dumps_ciphertexts([result]), media_type="application/octet-stream")
