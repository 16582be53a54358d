"""
Tests for the offline chain verifier (tools/verify.py).
"""

import json

import pytest

from starregistry.core import Block, Ledger, encode_payload
from tools.verify import VerificationResult, main, verify_chain


@pytest.fixture
def exported():
    ledger = Ledger()
    ledger.append(Block.from_payload({"star": {"owner": "B2", "name": "Sirius"}}))
    ledger.append(Block.from_payload({"star": {"owner": "A1", "name": "Polaris"}}))
    return ledger.export()


@pytest.fixture
def write_chain(tmp_path):
    def _write(data):
        path = tmp_path / "chain.json"
        path.write_text(json.dumps(data), encoding="utf-8")
        return str(path)
    return _write


class TestVerifyChain:
    """Test verification without the CLI."""

    def test_valid_chain(self, exported):
        report = verify_chain(exported)

        assert report.result == VerificationResult.VERIFIED
        assert report.block_count == 3
        assert report.owners == ["A1", "B2"]
        assert report.head_hash == exported[-1]["hash"]
        assert report.checks_failed == []

    def test_tampered_chain(self, exported):
        exported[1]["body"] = encode_payload({"star": {"owner": "MALLORY"}})

        report = verify_chain(exported)

        assert report.result == VerificationResult.TAMPERED
        assert report.checks_failed == ["Block 1 is invalid."]

    @pytest.mark.parametrize("data", [{"blocks": []}, [], [{"height": 0}]])
    def test_invalid_format(self, data):
        assert verify_chain(data).result == VerificationResult.INVALID_FORMAT


class TestVerifyCli:
    """Test exit codes and output."""

    def test_exit_zero_for_valid_chain(self, exported, write_chain, capsys):
        assert main([write_chain(exported)]) == 0
        assert "VERIFIED" in capsys.readouterr().out

    def test_exit_one_for_tampered_chain(self, exported, write_chain):
        exported[2]["timestamp"] += 1
        assert main([write_chain(exported)]) == 1

    def test_exit_three_for_wrong_shape(self, write_chain):
        assert main([write_chain({"not": "a chain"})]) == 3

    def test_exit_three_for_bad_json(self, tmp_path):
        path = tmp_path / "broken.json"
        path.write_text("[{", encoding="utf-8")
        assert main([str(path)]) == 3

    def test_exit_three_for_missing_file(self, tmp_path):
        assert main([str(tmp_path / "missing.json")]) == 3

    def test_json_output(self, exported, write_chain, capsys):
        assert main([write_chain(exported), "--json"]) == 0

        output = json.loads(capsys.readouterr().out)
        assert output["result"] == "VERIFIED"
        assert output["block_count"] == 3
        assert output["owners"] == ["A1", "B2"]

    def test_verbose_lists_owners(self, exported, write_chain, capsys):
        main([write_chain(exported), "--verbose"])
        out = capsys.readouterr().out
        assert "+ A1" in out
        assert "+ B2" in out
