# tests/test_main.py
"""End-to-end tests for the ``errcheckif`` command line."""

import json

import pytest

from errcheckif import __version__
from errcheckif.main import EXIT_ERROR, EXIT_INFRA, EXIT_OK, main


LOAD = '(define ((ident "n" 5) (ident "err" 1 :pos (4 5))) ((call (ident "load" 2))))'
CHECK = '(if (binary != (ident "err" 1) (ident "nil" universe)) (block))'
IS_CHECK = (
    '(if (call (sel (ident "errors" 4) (ident "Is")) (ident "err" 1) (ident "ErrNotFound" 6)) (block))'
)


class TestCheckCommand:

    def test_clean(self, write_dump, capsys):
        path = write_dump(f"{LOAD}\n{CHECK}")
        assert main(["check", str(path)]) == EXIT_OK
        assert capsys.readouterr().out == ""

    def test_findings(self, write_dump, capsys):
        path = write_dump(LOAD)
        assert main(["check", str(path)]) == EXIT_ERROR
        assert "main.go:4:5: warning: error 'err' is not checked or returned" in capsys.readouterr().out

    def test_json_output(self, write_dump, capsys):
        path = write_dump(LOAD)
        main(["check", str(path), "--output", "json"])
        record = json.loads(capsys.readouterr().out)
        assert record["linenr"] == 4

    def test_summary_output(self, write_dump, capsys):
        path = write_dump(LOAD)
        main(["check", str(path), "--output", "summary"])
        assert capsys.readouterr().out.startswith("Checker run complete: 1 findings")

    def test_test_files_skipped_unless_included(self, write_dump):
        path = write_dump(LOAD, filename="fetch_test.go")
        assert main(["check", str(path)]) == EXIT_OK
        assert main(["check", str(path), "--include-tests"]) == EXIT_ERROR

    def test_generated_files(self, write_dump):
        marker = '(comment 1 "// Code generated by mockgen. DO NOT EDIT.")'
        path = write_dump(LOAD, comments=marker)
        assert main(["check", str(path)]) == EXIT_OK
        assert main(["check", str(path), "--include-generated"]) == EXIT_ERROR

    def test_suppress_flag(self, write_dump):
        path = write_dump(LOAD)
        assert main(["check", str(path), "--suppress", "uncheckedError"]) == EXIT_OK

    def test_error_package_flag(self, write_dump):
        path = write_dump(f"{LOAD}\n{IS_CHECK}")
        assert main(["check", str(path)]) == EXIT_OK
        assert main(["check", str(path), "--error-package", "xerrors"]) == EXIT_ERROR
        assert main(["check", str(path), "--predicates", "As"]) == EXIT_ERROR

    def test_config_file(self, write_dump, tmp_path):
        path = write_dump(f"{LOAD}\n{IS_CHECK}")
        cfg = tmp_path / "settings.json"
        cfg.write_text(json.dumps({"error_predicates": ["As"]}), encoding="utf-8")
        assert main(["check", str(path), "--config", str(cfg)]) == EXIT_ERROR
        assert main(["check", str(path), "--config", str(cfg), "--predicates", "Is"]) == EXIT_OK

    def test_jobs(self, write_dump):
        a = write_dump(LOAD, filename="a.go", name="a.dump")
        b = write_dump(f"{LOAD}\n{CHECK}", filename="b.go", name="b.dump")
        assert main(["check", str(a), str(b), "--jobs", "2"]) == EXIT_ERROR


class TestInfrastructureFailures:

    def test_missing_dump(self, tmp_path):
        assert main(["check", str(tmp_path / "missing.dump")]) == EXIT_INFRA

    def test_malformed_dump(self, tmp_path, caplog):
        path = tmp_path / "bad.dump"
        path.write_text('(unit "a.go"', encoding="utf-8")
        assert main(["check", str(path)]) == EXIT_INFRA
        assert "ECI-1002" in caplog.text

    def test_non_utf8_dump(self, tmp_path, caplog):
        path = tmp_path / "latin1.dump"
        path.write_bytes(b'(unit "a.go" (package "\xff"))')
        assert main(["check", str(path)]) == EXIT_INFRA
        assert "ECI-1001" in caplog.text

    def test_bad_config(self, write_dump, tmp_path):
        cfg = tmp_path / "settings.json"
        cfg.write_text(json.dumps({"colour": "red"}), encoding="utf-8")
        assert main(["check", str(write_dump(LOAD)), "--config", str(cfg)]) == EXIT_INFRA

    def test_bad_jobs(self, write_dump):
        assert main(["check", str(write_dump(LOAD)), "--jobs", "0"]) == EXIT_INFRA

    def test_no_command(self):
        assert main([]) == EXIT_INFRA


class TestParseCommand:

    def test_outline(self, write_dump, capsys):
        path = write_dump(f"{LOAD}\n{CHECK}")
        assert main(["parse", str(path)]) == EXIT_OK
        out = capsys.readouterr().out
        assert out.startswith("# main.go: package main\n")
        assert "AssignStmt :=" in out
        assert "IfStmt" in out

    def test_version(self, capsys):
        with pytest.raises(SystemExit):
            main(["--version"])
        assert __version__ in capsys.readouterr().out
