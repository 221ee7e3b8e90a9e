# SPDX-License-Identifier: MPL-2.0
"""Shared types and constants for talking to the HSM."""
from __future__ import annotations

import base64
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Generic, List, Optional, Tuple, TypeVar

from eth_utils import keccak
from pydantic import BaseModel, ConfigDict, Field

from ..errors import FailureReason

T = TypeVar("T")

SECP256K1_OID = "1.3.132.0.10"


class HttpMethod(str, Enum):
    """HTTP methods the resilient caller knows how to issue."""

    GET = "GET"
    POST = "POST"


class KeyAttributes(BaseModel):
    """Attribute flags attached to a key pair at creation time."""

    model_config = ConfigDict(frozen=True)

    encrypt: bool = False
    decrypt: bool = False
    verify: bool = True
    sign: bool = True
    wrap: bool = False
    unwrap: bool = False
    derive: bool = False
    bip32: bool = False
    extractable: bool = False
    modifiable: bool = False
    destroyable: bool = False
    sensitive: bool = True
    copyable: bool = False


class KeyPairSpec(BaseModel):
    """Algorithm and attributes for every key this tool creates."""

    model_config = ConfigDict(frozen=True)

    algorithm: str = Field("EC", description="Key algorithm understood by the HSM")
    curve_oid: str = Field(SECP256K1_OID, description="Named curve OID")
    attributes: KeyAttributes = Field(default_factory=KeyAttributes)

    def creation_body(self, label: str) -> Dict[str, Any]:
        """Request body for ``POST /v1/key``."""
        return {
            "label": label,
            "algorithm": self.algorithm,
            "curveOid": self.curve_oid,
            "attributes": self.attributes.model_dump(),
        }


SECP256K1_KEY_SPEC = KeyPairSpec()


class SignChallenge(BaseModel):
    """A payload handed to the HSM for signing under a key label."""

    model_config = ConfigDict(frozen=True)

    payload: bytes
    payload_type: str = "UNSPECIFIED"
    signature_type: str = "ETH"
    signature_algorithm: str = "KECCAK256_WITH_ECDSA"

    def request_body(self, label: str) -> Dict[str, Any]:
        """Request body for ``POST /v1/synchronousSign``."""
        return {
            "signRequest": {
                "payload": base64.b64encode(self.payload).decode("ascii"),
                "payloadType": self.payload_type,
                "signKeyName": label,
                "signatureType": self.signature_type,
                "signatureAlgorithm": self.signature_algorithm,
            }
        }

    def digest(self) -> bytes:
        """Keccak-256 of the raw payload, as signed by the HSM."""
        return keccak(self.payload)


DEFAULT_CHALLENGES: Tuple[SignChallenge, ...] = (
    SignChallenge(payload=b"00"),
    SignChallenge(payload=b"01"),
)


class ProvisioningResult(BaseModel):
    """A created key and the address both challenges recovered to."""

    model_config = ConfigDict(frozen=True)

    label: str
    address: str


class LabelFailure(BaseModel):
    """A label that was dropped from the batch, and why."""

    model_config = ConfigDict(frozen=True)

    label: str
    reason: FailureReason
    detail: str = ""


@dataclass
class StepResult(Generic[T]):
    """Outcome of one pipeline step: a value or a tagged failure."""

    success: bool
    value: Optional[T] = None
    reason: Optional[FailureReason] = None
    error: Optional[str] = None

    @classmethod
    def ok(cls, value: T) -> "StepResult[T]":
        return cls(success=True, value=value)

    @classmethod
    def failed(cls, reason: FailureReason, error: str) -> "StepResult[T]":
        return cls(success=False, reason=reason, error=error)

    def __bool__(self) -> bool:
        return self.success


@dataclass
class BatchReport:
    """Successful results of a batch plus the labels that were dropped."""

    results: List[ProvisioningResult] = field(default_factory=list)
    failures: List[LabelFailure] = field(default_factory=list)
