# SPDX-License-Identifier: MPL-2.0
"""
Address derivation through HSM signature challenges.

The HSM never reveals key material, so the public address of a key is
recovered from signatures: two distinct payloads are signed under the key and
the signer address is recovered from each. Both must agree before the address
is trusted; on a mismatch neither address is returned.
"""
from __future__ import annotations

import logging
from typing import Optional, Sequence, Tuple

import requests

from ..config import KeyBatchSettings
from ..errors import (
    BusinessFailure,
    ConsistencyFailure,
    HSMKeyBatchError,
    RetryExhausted,
    SignatureDecodeError,
)
from .caller import ResilientCaller
from .recovery import decode_signature, recover_address
from .types import DEFAULT_CHALLENGES, HttpMethod, SignChallenge, StepResult

logger = logging.getLogger(__name__)

SIGNED = 200


class AddressDeriver:
    """Recover and cross-check the address of an HSM-held key."""

    def __init__(
        self,
        caller: ResilientCaller,
        settings: KeyBatchSettings,
        challenges: Sequence[SignChallenge] = DEFAULT_CHALLENGES,
    ) -> None:
        challenges = tuple(challenges)
        if len(challenges) < 2:
            raise ValueError("At least two challenges are needed to cross-check an address")
        if len({c.payload for c in challenges}) != len(challenges):
            raise ValueError("Challenge payloads must be distinct")
        self.caller = caller
        self.settings = settings
        self.challenges: Tuple[SignChallenge, ...] = challenges

    async def derive_address(self, label: str) -> Optional[str]:
        """Return the consistent lowercase address for ``label``, or ``None``."""
        return (await self.try_derive_address(label)).value

    async def try_derive_address(self, label: str) -> StepResult[str]:
        """Derive the address and tag the failure cause if there is one."""
        try:
            address = await self._derive(label)
        except ConsistencyFailure as e:
            logger.error(str(e))
            return StepResult.failed(e.reason, str(e))
        except RetryExhausted as e:
            logger.error(f'Error fetching public address for key "{label}": {e}')
            return StepResult.failed(e.reason, str(e))
        except HSMKeyBatchError as e:
            logger.error(f'Failed to fetch public address for key "{label}": {e}')
            return StepResult.failed(e.reason, str(e))
        return StepResult.ok(address)

    async def _derive(self, label: str) -> str:
        recovered: Optional[str] = None
        for challenge in self.challenges:
            current = await self._recover_one(label, challenge)
            if recovered is None:
                recovered = current
            elif current != recovered:
                raise ConsistencyFailure(label, recovered, current)
        assert recovered is not None
        return recovered

    async def _recover_one(self, label: str, challenge: SignChallenge) -> str:
        response = await self.caller.execute(
            self.settings.sign_url,
            challenge.request_body(label),
            self.settings.auth_headers(),
            HttpMethod.POST,
        )
        message = challenge.payload.decode("ascii", errors="replace")
        if response.status_code != SIGNED:
            raise BusinessFailure(
                f'Signing "{message}" returned status {response.status_code}, '
                f"Data: {response.text}",
                status_code=response.status_code,
                body=response.text,
            )
        signature = decode_signature(_signature_field(response))
        return recover_address(challenge.digest(), signature)


def _signature_field(response: requests.Response) -> str:
    try:
        body = response.json()
    except ValueError as e:
        raise SignatureDecodeError(
            f"Signing response is not JSON: {e}", status_code=response.status_code
        ) from e
    if not isinstance(body, dict) or "signature" not in body:
        raise SignatureDecodeError(
            "Signing response has no signature field", status_code=response.status_code
        )
    return body["signature"]
