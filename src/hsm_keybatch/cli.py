# SPDX-License-Identifier: MPL-2.0
"""Command line interface for HSM key batch provisioning."""
from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from typing import Callable, List, Mapping, Optional, TextIO

from .config import DEFAULT_ENV_FILE, KeyBatchSettings
from .errors import ConfigurationError
from .hsm.types import BatchReport
from .orchestrator import KeyBatchService
from .report import render_failures, render_report

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_CONFIG = 2


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="hsm-keybatch",
        description="Create key pairs in a remote HSM and print their addresses.",
    )
    parser.add_argument("--count", type=int, default=None, help="Number of keys (overrides NUM_KEYS)")
    parser.add_argument("--prefix", default=None, help="Key label prefix (overrides KEY_PREFIX)")
    parser.add_argument(
        "--env-file",
        default=DEFAULT_ENV_FILE,
        help="File with KEY=value settings read before the environment (default: .env)",
    )
    parser.add_argument(
        "--show-failures", action="store_true", help="List labels that were not provisioned"
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    return parser


class KeyBatchCLI:
    """Terminal entry point with semantic exit codes."""

    def __init__(
        self,
        environ: Optional[Mapping[str, str]] = None,
        service_factory: Callable[[KeyBatchSettings], KeyBatchService] = KeyBatchService.from_settings,
        stdout: Optional[TextIO] = None,
        stderr: Optional[TextIO] = None,
    ) -> None:
        self.environ = environ
        self.service_factory = service_factory
        self.stdout = stdout or sys.stdout
        self.stderr = stderr or sys.stderr

    def execute(self, args: List[str]) -> int:
        """Parse ``args``, run one batch and print the report."""
        options = build_parser().parse_args(args)
        logging.basicConfig(
            level=logging.DEBUG if options.verbose else logging.INFO,
            format="%(asctime)s %(levelname)s %(name)s: %(message)s",
            stream=self.stderr,
        )

        try:
            settings = KeyBatchSettings.from_env(
                self.environ,
                env_file=options.env_file,
                num_keys=options.count,
                key_prefix=options.prefix,
            )
        except ConfigurationError as e:
            print(str(e), file=self.stderr)
            return EXIT_CONFIG

        report = asyncio.run(self._run(settings))
        print(render_report(report.results), file=self.stdout)
        if options.show_failures and report.failures:
            print(render_failures(report.failures), file=self.stderr)
        return EXIT_OK

    async def _run(self, settings: KeyBatchSettings) -> BatchReport:
        async with self.service_factory(settings) as service:
            return await service.run()


def main(argv: Optional[List[str]] = None) -> None:
    sys.exit(KeyBatchCLI().execute(sys.argv[1:] if argv is None else argv))


if __name__ == "__main__":
    main()
