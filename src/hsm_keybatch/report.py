# SPDX-License-Identifier: MPL-2.0
"""Plain-text rendering of batch results."""
from __future__ import annotations

from typing import Iterable

from .hsm.types import LabelFailure, ProvisioningResult


def format_result(result: ProvisioningResult) -> str:
    """One report line for a provisioned key, with the address lowercased."""
    return f"HSM Key Name: {result.label}, Address: {result.address.lower()}"


def render_report(results: Iterable[ProvisioningResult]) -> str:
    """One line per provisioned key, preceded by a blank line."""
    return "\n".join(["", *(format_result(r) for r in results)])


def render_failures(failures: Iterable[LabelFailure]) -> str:
    """One line per dropped label with its failure reason and detail."""
    lines = [f"Failed: {f.label} ({f.reason.value}) {f.detail}".rstrip() for f in failures]
    return "\n".join(lines)
