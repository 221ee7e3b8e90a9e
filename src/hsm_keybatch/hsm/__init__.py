# SPDX-License-Identifier: MPL-2.0
"""HSM REST API components: calling, key creation, address derivation."""
from .caller import ResilientCaller
from .deriver import AddressDeriver
from .provisioner import KeyProvisioner
from .recovery import decode_signature, recover_address
from .types import (
    DEFAULT_CHALLENGES,
    SECP256K1_KEY_SPEC,
    BatchReport,
    HttpMethod,
    KeyAttributes,
    KeyPairSpec,
    LabelFailure,
    ProvisioningResult,
    SignChallenge,
    StepResult,
)

__all__ = [
    "AddressDeriver",
    "BatchReport",
    "DEFAULT_CHALLENGES",
    "HttpMethod",
    "KeyAttributes",
    "KeyPairSpec",
    "KeyProvisioner",
    "LabelFailure",
    "ProvisioningResult",
    "ResilientCaller",
    "SECP256K1_KEY_SPEC",
    "SignChallenge",
    "StepResult",
    "decode_signature",
    "recover_address",
]
