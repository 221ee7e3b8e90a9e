# SPDX-License-Identifier: MPL-2.0
import io
import os

from hsm_keybatch.cli import EXIT_CONFIG, EXIT_OK, KeyBatchCLI
from hsm_keybatch.hsm.caller import ResilientCaller
from hsm_keybatch.hsm.types import LabelFailure, ProvisioningResult
from hsm_keybatch.errors import FailureReason
from hsm_keybatch.orchestrator import KeyBatchService
from hsm_keybatch.report import format_result, render_failures, render_report
from tests.helpers import FakeHSM, address_of, no_sleep

ENV = {"SECUROSYS_TOKEN_VALUE": "tok", "NUM_KEYS": "2", "KEY_PREFIX": "batch"}


def run_cli(args, environ, hsm=None, env_file=os.devnull):
    hsm = hsm or FakeHSM()
    created = []

    def factory(settings):
        caller = ResilientCaller(session=hsm.session(), retry_delay=0, sleep=no_sleep)
        created.append(settings)
        return KeyBatchService(settings, caller=caller)

    out, err = io.StringIO(), io.StringIO()
    cli = KeyBatchCLI(environ=environ, service_factory=factory, stdout=out, stderr=err)
    code = cli.execute(["--env-file", str(env_file), *args])
    return code, out.getvalue(), err.getvalue(), created


def test_prints_one_line_per_key():
    hsm = FakeHSM()
    hsm.create_status["batch_1"] = 500

    code, out, _, _ = run_cli([], ENV, hsm)

    assert code == EXIT_OK
    address = address_of(hsm.keys["batch_0"])
    assert out.strip().splitlines() == [f"HSM Key Name: batch_0, Address: {address}"]


def test_overrides_from_arguments():
    code, out, _, created = run_cli(["--count", "3", "--prefix", "cli"], ENV)

    assert code == EXIT_OK
    assert created[0].num_keys == 3
    assert out.count("HSM Key Name: cli_") == 3


def test_show_failures():
    hsm = FakeHSM()
    hsm.create_status["batch_0"] = 400

    _, _, err, _ = run_cli(["--show-failures"], ENV, hsm)

    assert "Failed: batch_0 (business_failure)" in err


def test_configuration_error_exits_before_network():
    code, out, err, created = run_cli([], {"SECUROSYS_TOKEN_VALUE": "tok", "NUM_KEYS": "101", "KEY_PREFIX": "x"})

    assert code == EXIT_CONFIG
    assert "exceeds the maximum allowed (100)" in err
    assert created == []
    assert out == ""


def test_report_formatting():
    result = ProvisioningResult(label="k_0", address="0xABC")
    assert format_result(result) == "HSM Key Name: k_0, Address: 0xabc"
    assert render_report([result]) == "\nHSM Key Name: k_0, Address: 0xabc"
    failure = LabelFailure(label="k_1", reason=FailureReason.CONSISTENCY_FAILURE)
    assert render_failures([failure]) == "Failed: k_1 (consistency_failure)"


def test_settings_from_env_file(tmp_path):
    env_file = tmp_path / ".env"
    env_file.write_text("SECUROSYS_TOKEN_VALUE=tok\nNUM_KEYS=3\nKEY_PREFIX=dotenv\n")

    code, out, _, created = run_cli([], {}, env_file=env_file)

    assert code == EXIT_OK
    assert created[0].num_keys == 3
    assert out.count("HSM Key Name: dotenv_") == 3
