# SPDX-License-Identifier: MPL-2.0
"""Decode HSM signatures and recover the signer's Ethereum address."""
from __future__ import annotations

import base64
import binascii
import string

from eth_keys import keys
from eth_keys.exceptions import BadSignature, ValidationError

from ..errors import SignatureDecodeError

SIGNATURE_LENGTH = 65
_HEX_DIGITS = set(string.hexdigits)


def decode_signature(encoded: str) -> bytes:
    """Turn the base64 ``signature`` field into 65 raw ``r || s || v`` bytes.

    The ``ETH`` signature type returns the signature as ASCII hex inside the
    base64 envelope; raw bytes are accepted as well.
    """
    if not isinstance(encoded, str) or not encoded:
        raise SignatureDecodeError("Signing response has no signature")
    try:
        decoded = base64.b64decode(encoded, validate=True)
    except (binascii.Error, ValueError) as e:
        raise SignatureDecodeError(f"Signature is not valid base64: {e}") from e

    if len(decoded) == SIGNATURE_LENGTH:
        return decoded

    text = decoded.decode("ascii", errors="replace").strip()
    if text[:2].lower() == "0x":
        text = text[2:]
    if len(text) == SIGNATURE_LENGTH * 2 and set(text) <= _HEX_DIGITS:
        return bytes.fromhex(text)

    raise SignatureDecodeError(
        f"Unexpected signature length: {len(decoded)} bytes after base64 decoding"
    )


def recovery_id(v: int) -> int:
    """Map an Ethereum ``v`` value onto the 0/1 recovery id."""
    if v in (0, 1):
        return v
    if v in (27, 28):
        return v - 27
    if v >= 35:
        # EIP-155: v = chain_id * 2 + 35 + recovery_id
        return (v - 35) % 2
    raise SignatureDecodeError(f"Invalid signature v value: {v}")


def recover_address(message_hash: bytes, signature: bytes) -> str:
    """Recover the lowercase ``0x`` address that produced ``signature``."""
    if len(signature) != SIGNATURE_LENGTH:
        raise SignatureDecodeError(f"Signature must be {SIGNATURE_LENGTH} bytes")
    r = int.from_bytes(signature[:32], "big")
    s = int.from_bytes(signature[32:64], "big")
    v = recovery_id(signature[64])
    try:
        sig = keys.Signature(vrs=(v, r, s))
        public_key = sig.recover_public_key_from_msg_hash(message_hash)
    except (BadSignature, ValidationError, ValueError) as e:
        raise SignatureDecodeError(f"Public key recovery failed: {e}") from e
    return public_key.to_address().lower()
