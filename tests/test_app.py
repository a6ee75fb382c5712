"""
Tests for the command-line interface.
"""

import json
import pytest

from docverify import __version__
from docverify.app import main
from docverify.database import dispose_engines


@pytest.fixture
def cli_env(tmp_path, monkeypatch, seed_items):
    """Isolated working directory with a seed file and a claim file."""
    monkeypatch.chdir(tmp_path)
    monkeypatch.delenv("DOCVERIFY_RULES_FILE", raising=False)
    monkeypatch.setenv("DOCVERIFY_DATABASE_URL", f"sqlite:///{tmp_path / 'cli.db'}")
    (tmp_path / "seeds.json").write_text(json.dumps(seed_items))
    (tmp_path / "claim.json").write_text(json.dumps({
        "request_id": "req-cli-1",
        "document_type": "PAN",
        "extracted": {"pan": "ABCDE1234F", "name": "Ravi Kumar", "extraction_confidence": 0.9},
    }))
    yield tmp_path
    dispose_engines()


class TestCLI:
    def test_version(self, capsys):
        main(["--version"])
        assert capsys.readouterr().out.strip() == __version__

    def test_init_db(self, cli_env, capsys):
        main(["init-db"])
        assert "Database ready" in capsys.readouterr().out
        assert (cli_env / "cli.db").exists()

    def test_seed_then_verify(self, cli_env, capsys):
        main(["seed", "--file", "seeds.json"])
        assert "created=5" in capsys.readouterr().out

        main(["verify", "--input", "claim.json"])
        result = json.loads(capsys.readouterr().out)
        assert result["status"] == "VERIFIED"
        assert result["matched_record"]["match_type"] == "exact_hash"

    def test_verify_batch(self, cli_env, capsys):
        main(["seed", "--file", "seeds.json"])
        claim = json.loads((cli_env / "claim.json").read_text())
        (cli_env / "batch.json").write_text(json.dumps([claim, claim]))
        capsys.readouterr()

        main(["verify", "--input", "batch.json", "--workers", "2"])
        results = json.loads(capsys.readouterr().out)
        assert len(results) == 2
        assert results[0]["verification_id"] != results[1]["verification_id"]

    def test_verify_invalid_claim_exits_2(self, cli_env, capsys):
        (cli_env / "bad.json").write_text(json.dumps({"document_type": "PAN", "extracted": {}}))
        with pytest.raises(SystemExit) as exc_info:
            main(["verify", "--input", "bad.json"])
        assert exc_info.value.code == 2
        assert json.loads(capsys.readouterr().out)["error"] == "invalid_claim"

    def test_validate(self, cli_env, capsys):
        main(["validate", "--input", "claim.json"])
        assert capsys.readouterr().out.strip() == "Valid"

        (cli_env / "bad.json").write_text(json.dumps({"document_type": "LIBRARY_CARD", "extracted": {}}))
        with pytest.raises(SystemExit) as exc_info:
            main(["validate", "--input", "bad.json"])
        assert exc_info.value.code == 2
        assert "Unknown document_type" in capsys.readouterr().out

    def test_missing_input_file(self, cli_env):
        with pytest.raises(SystemExit, match="Input file not found"):
            main(["verify", "--input", "nope.json"])

    def test_ledger(self, cli_env, capsys):
        main(["seed", "--file", "seeds.json"])
        main(["verify", "--input", "claim.json"])
        capsys.readouterr()

        main(["ledger", "--request-id", "req-cli-1"])
        rows = json.loads(capsys.readouterr().out)
        assert [r["request_id"] for r in rows] == ["req-cli-1"]

        main(["ledger", "--document-type", "pan", "--status", "rejected"])
        assert "No verifications found." in capsys.readouterr().out

    def test_ledger_needs_a_filter(self, cli_env):
        with pytest.raises(SystemExit, match="--request-id"):
            main(["ledger", "--document-type", "PAN"])

    def test_rules(self, cli_env, capsys):
        main(["rules"])
        out = capsys.readouterr().out
        assert "Loaded 17 rule sets" in out
        assert "LEASE" in out
        assert "premises_address:0.6" in out

    def test_bad_rules_file(self, cli_env, monkeypatch):
        (cli_env / "rules.json").write_text(json.dumps([{"document_type": "PAN", "fuzzy_threshold": 4}]))
        monkeypatch.setenv("DOCVERIFY_RULES_FILE", str(cli_env / "rules.json"))
        with pytest.raises(SystemExit, match="Rule set error"):
            main(["rules"])
