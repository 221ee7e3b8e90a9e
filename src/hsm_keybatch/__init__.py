# SPDX-License-Identifier: MPL-2.0
"""HSM key batch - provision HSM key pairs and derive their addresses."""

__version__ = "0.1.0"

# Import key components for easier access
from .cli import KeyBatchCLI
from .config import MAX_KEYS, KeyBatchSettings
from .errors import ConfigurationError, FailureReason, HSMKeyBatchError
from .hsm import AddressDeriver, KeyProvisioner, ProvisioningResult, ResilientCaller
from .orchestrator import BatchOrchestrator, KeyBatchService, make_labels

__all__ = [
    "AddressDeriver",
    "BatchOrchestrator",
    "ConfigurationError",
    "FailureReason",
    "HSMKeyBatchError",
    "KeyBatchCLI",
    "KeyBatchService",
    "KeyBatchSettings",
    "KeyProvisioner",
    "MAX_KEYS",
    "ProvisioningResult",
    "ResilientCaller",
    "make_labels",
]
