# SPDX-License-Identifier: MPL-2.0
"""Key pair creation inside the HSM."""
from __future__ import annotations

import logging

from ..config import KeyBatchSettings
from ..errors import FailureReason, RetryExhausted
from .caller import ResilientCaller
from .types import SECP256K1_KEY_SPEC, HttpMethod, KeyPairSpec, StepResult

logger = logging.getLogger(__name__)

CREATED = 201


class KeyProvisioner:
    """Ask the HSM to create one non-exportable signing key per label."""

    def __init__(
        self,
        caller: ResilientCaller,
        settings: KeyBatchSettings,
        spec: KeyPairSpec = SECP256K1_KEY_SPEC,
    ) -> None:
        self.caller = caller
        self.settings = settings
        self.spec = spec

    async def create_key_pair(self, label: str) -> bool:
        """Create a key pair under ``label``; ``False`` on any failure."""
        return (await self.try_create_key_pair(label)).success

    async def try_create_key_pair(self, label: str) -> StepResult[str]:
        """Create a key pair and tag the failure cause if it does not succeed."""
        try:
            response = await self.caller.execute(
                self.settings.key_url,
                self.spec.creation_body(label),
                self.settings.auth_headers(),
                HttpMethod.POST,
            )
        except RetryExhausted as e:
            logger.error(f'Error creating key pair "{label}": {e}')
            return StepResult.failed(FailureReason.RETRY_EXHAUSTED, str(e))

        if response.status_code == CREATED:
            return StepResult.ok(label)

        logger.error(
            f'Failed to create key pair "{label}". '
            f"Status: {response.status_code}, Data: {response.text}"
        )
        return StepResult.failed(
            FailureReason.BUSINESS_FAILURE,
            f"Key creation returned status {response.status_code}",
        )
