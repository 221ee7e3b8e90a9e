"""Shared fakes for exercising the pipeline without a real HSM."""
import base64
import json
from typing import Any, Callable, Dict, List

import requests
from eth_keys import keys
from eth_utils import keccak


API_URL = "https://hsm.test"


def make_response(status_code: int, body: Any = None) -> requests.Response:
    """Build a real ``requests.Response`` with a JSON body."""
    response = requests.Response()
    response.status_code = status_code
    response.encoding = "utf-8"
    response._content = json.dumps(body if body is not None else {}).encode()
    return response


def private_key(seed: int) -> keys.PrivateKey:
    return keys.PrivateKey(seed.to_bytes(32, "big"))


def address_of(key: keys.PrivateKey) -> str:
    return key.public_key.to_address().lower()


def eth_signature(key: keys.PrivateKey, payload: bytes) -> str:
    """Sign like the HSM's ETH signature type: base64 of hex ``r || s || v``."""
    raw = key.sign_msg_hash(keccak(payload)).to_bytes()
    eth = raw[:64] + bytes([raw[64] + 27])
    return base64.b64encode(eth.hex().encode("ascii")).decode("ascii")


class FakeSession:
    """Stand-in for ``requests.Session`` that routes calls to a handler."""

    def __init__(self, handler: Callable[..., requests.Response]) -> None:
        self.handler = handler
        self.calls: List[Dict[str, Any]] = []
        self.closed = False

    def request(self, method, url, headers=None, timeout=None, json=None):
        self.calls.append(
            {"method": method, "url": url, "headers": headers, "timeout": timeout, "json": json}
        )
        return self.handler(method=method, url=url, json=json)

    def close(self) -> None:
        self.closed = True


def scripted_session(*outcomes) -> FakeSession:
    """Session returning (or raising) ``outcomes`` in order."""
    remaining = list(outcomes)

    def handler(**_):
        outcome = remaining.pop(0)
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome

    return FakeSession(handler)


class FakeHSM:
    """In-memory HSM answering key creation and signing requests."""

    def __init__(self) -> None:
        self.keys: Dict[str, keys.PrivateKey] = {}
        self.create_status: Dict[str, int] = {}
        self.sign_override: Dict[str, Callable[[bytes], requests.Response]] = {}

    def handle(self, method, url, json=None) -> requests.Response:
        if url.endswith("/v1/key"):
            label = json["label"]
            status = self.create_status.get(label, 201)
            if status == 201:
                self.keys[label] = keys.PrivateKey(keccak(text=label))
            return make_response(status, {"label": label})
        if url.endswith("/v1/synchronousSign"):
            request = json["signRequest"]
            label = request["signKeyName"]
            payload = base64.b64decode(request["payload"])
            if label in self.sign_override:
                return self.sign_override[label](payload)
            if label not in self.keys:
                return make_response(404, {"error": "key not found"})
            return make_response(200, {"signature": eth_signature(self.keys[label], payload)})
        return make_response(404, {})

    def session(self) -> FakeSession:
        return FakeSession(self.handle)


async def no_sleep(_delay: float) -> None:
    return None
