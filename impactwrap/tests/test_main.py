"""
Tests for the command line interface.
"""

import argparse
import json
from decimal import Decimal
from unittest.mock import patch

import pytest

from impactwrap.core.settings import Settings
from impactwrap.main import create_parser, main, positive_decimal


@pytest.fixture(autouse=True)
def memory_settings():
    """Run every command against an in-memory store."""
    config = Settings(_env_file=None, database_url=None, log_format="text")
    with patch("impactwrap.main.settings", return_value=config):
        yield config


def read_json(capsys):
    return json.loads(capsys.readouterr().out)


class TestParser:
    """Test argument parsing."""

    def test_ingest_arguments(self):
        args = create_parser().parse_args(["ingest", "donors.csv", "--org-id", "3"])
        assert args.command == "ingest"
        assert args.file == "donors.csv"
        assert args.org_id == 3

    def test_ingest_requires_org_id(self):
        with pytest.raises(SystemExit):
            create_parser().parse_args(["ingest", "donors.csv"])

    def test_command_required(self):
        with pytest.raises(SystemExit):
            create_parser().parse_args([])

    def test_global_options(self):
        args = create_parser().parse_args(["--log-level", "DEBUG", "--log-format", "text", "template"])
        assert args.log_level == "DEBUG"
        assert args.log_format == "text"

    def test_version(self, capsys):
        with pytest.raises(SystemExit) as excinfo:
            create_parser().parse_args(["--version"])
        assert excinfo.value.code == 0
        assert "Impact Wrapped" in capsys.readouterr().out

    def test_coefficient_overrides(self):
        args = create_parser().parse_args(["impact", "10", "--dollars-per-meal", "0.2"])
        assert args.dollars_per_meal == Decimal("0.2")
        assert args.water_per_pound is None

    @pytest.mark.parametrize("value", ["0", "-1", "abc", "inf"])
    def test_positive_decimal_rejects(self, value):
        with pytest.raises(argparse.ArgumentTypeError):
            positive_decimal(value)


class TestImpactCommand:
    """Test the impact command."""

    def test_default_coefficients(self, capsys):
        assert main(["impact", "10"]) == 0
        output = read_json(capsys)
        assert output["meals"] == 100
        assert output["people"] == 9
        assert output["waterSaved"] == 12960
        assert output["mealsPerDollar"] == 10

    def test_override(self, capsys):
        assert main(["impact", "10", "--dollars-per-meal", "0.20"]) == 0
        assert read_json(capsys)["meals"] == 50

    @pytest.mark.parametrize("amount", ["-5", "lots", "nan", "1e27"])
    def test_invalid_amount(self, amount, capsys):
        assert main(["impact", "--", amount]) == 2
        assert "Amount must be" in capsys.readouterr().err


class TestTemplateCommand:
    """Test the template command."""

    def test_stdout(self, capsys):
        assert main(["template"]) == 0
        assert capsys.readouterr().out.startswith("first_name,last_name,email,total_giving,")

    def test_output_file(self, tmp_path):
        path = tmp_path / "template.csv"
        assert main(["template", "--output", str(path)]) == 0
        assert path.read_text(encoding="utf-8").splitlines()[1].startswith("John,Doe,")


class TestIngestCommand:
    """Test the ingest command."""

    def test_ingest_csv(self, tmp_path, capsys):
        path = tmp_path / "donors.csv"
        path.write_text(
            "first_name,last_name,email,total_giving\n"
            "John,Doe,john@example.com,250\n"
            "Jane,Smith,not-an-email,100\n",
            encoding="utf-8",
        )

        assert main(["ingest", str(path), "--org-id", "1"]) == 0

        output = read_json(capsys)
        assert output["outcome"] == "partial"
        assert output["totalProcessed"] == 1
        assert list(output["impactUrls"]) == ["john@example.com"]

    def test_ingest_all_invalid_fails(self, tmp_path, capsys):
        path = tmp_path / "donors.csv"
        path.write_text("first_name,last_name,email,total_giving\n,,,\nx,y,z,w\n", encoding="utf-8")

        assert main(["ingest", str(path), "--org-id", "1"]) == 1
        assert read_json(capsys)["outcome"] == "all_invalid"

    def test_missing_file(self, tmp_path):
        assert main(["ingest", str(tmp_path / "missing.csv"), "--org-id", "1"]) == 1

    def test_unsupported_file(self, tmp_path):
        path = tmp_path / "donors.json"
        path.write_text("[]")
        assert main(["ingest", str(path), "--org-id", "1"]) == 1

    def test_unknown_organization(self, tmp_path):
        path = tmp_path / "donors.csv"
        path.write_text("first_name,last_name,email,total_giving\nJohn,Doe,john@example.com,1\n")
        assert main(["ingest", str(path), "--org-id", "42"]) == 1


class TestInitDbCommand:
    """Test the init-db command."""

    def test_requires_database(self):
        assert main(["init-db"]) == 1

    def test_creates_schema(self, tmp_path, memory_settings):
        config = memory_settings.model_copy(update={"database_url": f"sqlite:///{tmp_path / 'impact.db'}"})
        with patch("impactwrap.main.settings", return_value=config):
            assert main(["init-db"]) == 0
        assert (tmp_path / "impact.db").exists()


class TestServeCommand:
    """Test the serve command."""

    def test_runs_uvicorn(self, memory_settings):
        with patch("uvicorn.run") as run:
            assert main(["serve", "--port", "9000"]) == 0

        run.assert_called_once_with(
            "impactwrap.api.main:app",
            host=memory_settings.api_host,
            port=9000,
            reload=False,
        )
