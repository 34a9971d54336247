"""Command line entry point tests"""

import asyncio
import json
import logging

import pytest
import yaml

from cli.run import build_parser, main
from services.database import Database


@pytest.fixture(autouse=True)
def restore_logging():
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)


@pytest.fixture
def cli_config(tmp_path, monkeypatch):
    monkeypatch.delenv("GEMINI_API_KEY", raising=False)
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)
    db_path = tmp_path / "cli.db"
    path = tmp_path / "config.yml"
    path.write_text(yaml.safe_dump({"DATABASE_PATH": str(db_path), "BATCH_DELAY": 0}), encoding="utf-8")
    return str(path), str(db_path)


class TestParser:

    def test_audit_flags(self):
        args = build_parser().parse_args(["audit", "--kind", "news", "--limit", "10", "--only-unscored"])
        assert args.kind == "news"
        assert args.limit == 10
        assert args.only_unscored is True
        assert args.force is False

    def test_analyze_needs_a_source(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args(["analyze"])


class TestCommands:

    def test_init_db(self, cli_config):
        config_path, db_path = cli_config

        assert main(["--config", config_path, "init-db"]) == 0

        rows = asyncio.run(Database(db_path).fetchall(
            "SELECT name FROM sqlite_master WHERE type = 'table'"
        ))
        assert {"content_items", "content_improvements"} <= {r["name"] for r in rows}

    def test_init_db_creates_missing_directory(self, tmp_path, monkeypatch):
        monkeypatch.delenv("GEMINI_API_KEY", raising=False)
        monkeypatch.delenv("OPENAI_API_KEY", raising=False)
        db_path = tmp_path / "fresh" / "data" / "content.db"
        config_path = tmp_path / "config.yml"
        config_path.write_text(yaml.safe_dump({"DATABASE_PATH": str(db_path)}), encoding="utf-8")

        assert main(["--config", str(config_path), "init-db"]) == 0
        assert db_path.exists()

    def test_analyze_file_without_providers(self, cli_config, tmp_path, capsys):
        config_path, _ = cli_config
        article = tmp_path / "article.html"
        article.write_text("<p>Bodrum'da kiralık daire</p>", encoding="utf-8")

        code = main(["--config", config_path, "analyze", "--file", str(article), "--title", "Kiralık"])

        output = json.loads(capsys.readouterr().out)
        assert code == 2
        assert output["score"] == 50
        assert output["issues"][0]["type"] == "error"

    def test_audit_empty_database(self, cli_config, capsys):
        config_path, _ = cli_config

        code = main(["--config", config_path, "audit"])

        report = json.loads(capsys.readouterr().out)
        assert code == 0
        assert report["total"] == 0
