# SPDX-License-Identifier: MPL-2.0
"""Concurrent batch provisioning across many key labels."""
from __future__ import annotations

import asyncio
import logging
from typing import List, Optional, Union

from .config import MAX_KEYS, KeyBatchSettings, validate_batch_size
from .errors import FailureReason
from .hsm.caller import ResilientCaller
from .hsm.deriver import AddressDeriver
from .hsm.provisioner import KeyProvisioner
from .hsm.types import BatchReport, LabelFailure, ProvisioningResult

logger = logging.getLogger(__name__)

Outcome = Union[ProvisioningResult, LabelFailure]


def make_labels(prefix: str, count: int) -> List[str]:
    """Generate ``prefix_0`` .. ``prefix_{count-1}``."""
    return [f"{prefix}_{idx}" for idx in range(count)]


class BatchOrchestrator:
    """Run create-then-derive for every label of a batch concurrently."""

    def __init__(
        self,
        provisioner: KeyProvisioner,
        deriver: AddressDeriver,
        max_keys: int = MAX_KEYS,
    ) -> None:
        self.provisioner = provisioner
        self.deriver = deriver
        self.max_keys = max_keys

    async def provision_batch(self, prefix: str, count: int) -> List[ProvisioningResult]:
        """Provision ``count`` keys and return only the fully verified ones."""
        return (await self.run(prefix, count)).results

    async def run(self, prefix: str, count: int) -> BatchReport:
        """Provision a batch and keep the tagged failures alongside the results."""
        validate_batch_size(count, self.max_keys)
        labels = make_labels(prefix, count)
        outcomes = await asyncio.gather(*(self._pipeline(label) for label in labels))

        report = BatchReport()
        for outcome in outcomes:
            if isinstance(outcome, ProvisioningResult):
                report.results.append(outcome)
            else:
                report.failures.append(outcome)
        logger.info(
            f"Batch {prefix!r} finished: {len(report.results)}/{count} keys provisioned"
        )
        return report

    async def _pipeline(self, label: str) -> Outcome:
        try:
            created = await self.provisioner.try_create_key_pair(label)
            if not created:
                return LabelFailure(label=label, reason=created.reason, detail=created.error or "")

            logger.info(f"Key {label} has been created. Fetching its public address...")
            derived = await self.deriver.try_derive_address(label)
            if not derived:
                return LabelFailure(label=label, reason=derived.reason, detail=derived.error or "")
            return ProvisioningResult(label=label, address=derived.value)
        except Exception as e:
            logger.error(f"Unexpected error while provisioning {label}: {e}", exc_info=True)
            return LabelFailure(
                label=label, reason=FailureReason.UNEXPECTED_ERROR, detail=str(e)
            )


class KeyBatchService:
    """Wire the pipeline components from settings and own the HTTP session."""

    def __init__(self, settings: KeyBatchSettings, caller: Optional[ResilientCaller] = None) -> None:
        self.settings = settings
        self.caller = caller or ResilientCaller(
            max_attempts=settings.max_attempts,
            retry_delay=settings.retry_delay_seconds,
            timeout=settings.request_timeout_seconds,
            max_concurrency=settings.max_keys,
        )
        self.orchestrator = BatchOrchestrator(
            KeyProvisioner(self.caller, settings),
            AddressDeriver(self.caller, settings),
            max_keys=settings.max_keys,
        )

    @classmethod
    def from_settings(cls, settings: KeyBatchSettings) -> "KeyBatchService":
        return cls(settings)

    async def run(self) -> BatchReport:
        return await self.orchestrator.run(self.settings.key_prefix, self.settings.num_keys)

    async def __aenter__(self) -> "KeyBatchService":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        self.caller.close()
