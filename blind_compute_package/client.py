# client.py
import os

import requests

from blind_compute_package.wire import ProgramModel, dumps_ciphertexts, dumps_relin_key, loads_ciphertexts

# CONFIG
SERVER_URL = os.environ.get("FHE_SERVER_URL", "http://localhost:8000/evaluate")
REQUEST_TIMEOUT = 300  # seconds; server-side multiplication is slow in pure Python


class RemoteEvaluationError(RuntimeError):
    def __init__(self, status_code, detail):
        self.status_code = status_code
        self.detail = detail
        super().__init__(f"Server returned {status_code}: {detail}")


class RemoteEvaluator:
    """Sends a program and encrypted operands to the server. Keys stay on this machine
    except for the relinearization key, which the server needs to multiply."""

    def __init__(self, url=SERVER_URL, timeout=REQUEST_TIMEOUT):
        self.url = url
        self.timeout = timeout

    def evaluate(self, program, operands, relin_key=None, op="mul", indexed=False):
        files = {'operands_file': dumps_ciphertexts(operands)}
        if relin_key is not None:
            files['relin_key_file'] = dumps_relin_key(relin_key)
        data = {
            'program': ProgramModel.from_program(program, indexed=indexed).model_dump_json(),
            'op': op,
        }

        response = requests.post(self.url, files=files, data=data, timeout=self.timeout)

        if response.status_code != 200:
            try:
                detail = response.json().get('detail')
            except ValueError:
                detail = response.text
            raise RemoteEvaluationError(response.status_code, detail)

        result, = loads_ciphertexts(response.content)
        return result
