"""
Integration tests for the dimension-versioning command line.
"""

import json
import pytest

import sys
import os
sys.path.append(os.path.join(os.path.dirname(__file__), '..', '..', 'src'))

from libraries.dimension_versioning.cli import build_parser, main


class TestCli:
    """Integration tests for the command line on SQLite."""

    @pytest.fixture
    def db_url(self, tmp_path):
        return f"sqlite:///{tmp_path / 'warehouse.db'}"

    @pytest.fixture
    def config_file(self, tmp_path):
        """Write a single-dimension configuration file."""
        path = tmp_path / "dimensions.json"
        path.write_text(json.dumps([{
            "dimension_id": "branch",
            "table_name": "dim_branch",
            "natural_key_column": "branch_nk",
            "surrogate_key_column": "branch_sk",
            "type2_columns": ["branch_status", "opening_date"],
            "type1_columns": ["branch_name"],
            "column_types": {"opening_date": "date"},
            "case_insensitive_columns": ["branch_status"]
        }]))
        return str(path)

    def write_records(self, tmp_path, rows, name="branches.jsonl"):
        path = tmp_path / name
        path.write_text("\n".join(json.dumps(row) for row in rows) + "\n")
        return str(path)

    def branch(self, nk, as_of, status="OPEN", name="Main St"):
        return {"natural_key": nk, "as_of_date": as_of,
                "attributes": {"branch_status": status, "opening_date": "2019-04-01",
                               "branch_name": name}}

    def common(self, db_url, config_file):
        return ["--db-url", db_url, "--schema", "", "--config", config_file]

    def test_parser_requires_command(self):
        """A subcommand is mandatory."""
        with pytest.raises(SystemExit):
            build_parser().parse_args([])

    def test_load_sync_and_verify(self, tmp_path, db_url, config_file, capsys):
        """Create tables, load a history and verify it."""
        assert main(["create-tables"] + self.common(db_url, config_file)) == 0
        assert capsys.readouterr().out.strip() == "dim_branch"

        records = self.write_records(tmp_path, [
            self.branch("B01", "2024-01-01"),
            self.branch("B02", "2024-01-01"),
            self.branch("B01", "2024-07-01", status="CLOSED"),
            self.branch("B02", "2024-03-01", name="Harbour Rd"),
            self.branch("B02", "2024-04-01", status="open", name="Harbour Rd"),
        ])
        exit_code = main(["load"] + self.common(db_url, config_file) +
                         ["--dimension", "branch", "--input", records])
        metrics = json.loads(capsys.readouterr().out)

        assert exit_code == 0
        assert metrics["records_processed"] == 5
        assert metrics["new_entities"] == 2
        assert metrics["type2_versions"] == 1
        assert metrics["type1_updates"] == 1
        assert metrics["unchanged"] == 1

        assert main(["sync-sequences"] + self.common(db_url, config_file)) == 0
        assert capsys.readouterr().out.strip() == "branch\t4"

        assert main(["verify"] + self.common(db_url, config_file) + ["--dimension", "branch"]) == 0
        assert capsys.readouterr().out == ""

    def test_load_reports_rejected_records(self, tmp_path, db_url, config_file, capsys):
        """A backdated record makes the load exit with status 1."""
        main(["create-tables"] + self.common(db_url, config_file))
        first = self.write_records(tmp_path, [self.branch("B01", "2024-06-01")], "first.jsonl")
        main(["load"] + self.common(db_url, config_file) + ["--dimension", "branch", "--input", first])
        capsys.readouterr()

        late = self.write_records(tmp_path, [self.branch("B01", "2024-01-01", status="CLOSED")], "late.jsonl")
        exit_code = main(["load"] + self.common(db_url, config_file) +
                         ["--dimension", "branch", "--input", late])
        metrics = json.loads(capsys.readouterr().out)

        assert exit_code == 1
        assert metrics["records_with_errors"] == 1
        assert metrics["errors"][0].startswith("INVALID_AS_OF_DATE")

    def test_load_bad_input_line(self, tmp_path, db_url, config_file):
        """An unparseable as-of date stops the load with status 2."""
        main(["create-tables"] + self.common(db_url, config_file))
        records = self.write_records(tmp_path, [self.branch("B01", "not-a-date")])

        exit_code = main(["load"] + self.common(db_url, config_file) +
                         ["--dimension", "branch", "--input", records])

        assert exit_code == 2

    def test_load_malformed_json_line(self, tmp_path, db_url, config_file):
        """Malformed JSON or a non-object line stops the load with status 2."""
        main(["create-tables"] + self.common(db_url, config_file))
        broken = tmp_path / "broken.jsonl"
        broken.write_text(json.dumps(self.branch("B01", "2024-01-01")) + "\n{not json\n")
        listed = tmp_path / "listed.jsonl"
        listed.write_text(json.dumps([self.branch("B01", "2024-01-01")]) + "\n")

        for path in (broken, listed):
            exit_code = main(["load"] + self.common(db_url, config_file) +
                             ["--dimension", "branch", "--input", str(path)])
            assert exit_code == 2

    def test_reject_strategy(self, tmp_path, db_url, config_file):
        """Conflicting same-day records fail the load with the reject strategy."""
        main(["create-tables"] + self.common(db_url, config_file))
        records = self.write_records(tmp_path, [
            self.branch("B01", "2024-01-01", status="OPEN"),
            self.branch("B01", "2024-01-01", status="CLOSED"),
        ])

        exit_code = main(["load"] + self.common(db_url, config_file) +
                         ["--dimension", "branch", "--input", records, "--strategy", "reject"])

        assert exit_code == 2

    def test_unknown_dimension(self, db_url, config_file):
        """Unknown dimensions are configuration errors."""
        exit_code = main(["verify"] + self.common(db_url, config_file) + ["--dimension", "customer"])

        assert exit_code == 2

    def test_banking_presets(self, db_url, capsys):
        """Without a configuration file the banking dimensions are used."""
        exit_code = main(["create-tables", "--db-url", db_url, "--schema", "",
                          "--dimension", "customer", "--dimension", "geography"])

        assert exit_code == 0
        assert capsys.readouterr().out.split() == ["dim_customer", "dim_geography"]
