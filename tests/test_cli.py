"""Smoke tests for the typer command-line interface."""

from __future__ import annotations

import json
import logging
from typing import Generator

import pytest
from typer.testing import CliRunner

from frigo.cli import app


@pytest.fixture()
def runner(monkeypatch) -> Generator[CliRunner, None, None]:
    monkeypatch.setenv("FRIGO_LOG_LEVEL", "WARNING")
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield CliRunner()
    root.handlers = handlers
    root.setLevel(level)


def _invoke(runner, *args):
    return runner.invoke(app, list(args))


def _items(runner):
    result = _invoke(runner, "list", "--json")
    assert result.exit_code == 0, result.output
    return json.loads(result.stdout)


def test_add_merges_and_lists(runner):
    assert _invoke(runner, "add", "Lait", "--brand", "Lactel", "-q", "2").exit_code == 0
    result = _invoke(runner, "add", "lait", "--brand", "LACTEL", "--category", "produits laitiers")
    assert result.exit_code == 0
    assert "now 3 in stock" in result.stdout

    items = _items(runner)
    assert len(items) == 1
    assert items[0]["quantity"] == 3
    assert items[0]["category"] == "Produits Laitiers"


def test_update_price_and_show_history(runner):
    _invoke(runner, "add", "Beurre", "--brand", "Président", "--price", "2.10", "--store", "Lidl")
    item_id = _items(runner)[0]["id"]

    result = _invoke(runner, "update", item_id, "--price", "2.50")
    assert result.exit_code == 0

    result = _invoke(runner, "prices", item_id)
    assert result.exit_code == 0
    assert "2.10 EUR  Lidl" in result.stdout
    assert "2.50 EUR  Lidl" in result.stdout
    assert "+0.40 EUR" in result.stdout


def test_exit_beyond_stock_fails(runner):
    _invoke(runner, "add", "Oeufs", "--brand", "Loué", "-q", "2")
    item_id = _items(runner)[0]["id"]

    result = _invoke(runner, "exit", item_id, "5")

    assert result.exit_code == 1
    assert _items(runner)[0]["quantity"] == 2

    result = _invoke(runner, "exit", item_id, "2", "--reason", "consumed", "--date", "2024-06-01")
    assert result.exit_code == 0
    assert _items(runner)[0]["quantity"] == 0


def test_update_unknown_item_fails(runner):
    result = _invoke(runner, "update", "missing", "--quantity", "2")

    assert result.exit_code == 1


def test_export_and_import_round_trip(runner, tmp_path):
    _invoke(runner, "add", "Riz", "--brand", "Taureau Ailé", "-q", "3")
    _invoke(runner, "add", "Pâtes", "--brand", "Panzani")
    target = tmp_path / "frigo.csv"

    result = _invoke(runner, "export", str(target))
    assert result.exit_code == 0
    assert "Exported 2 item(s)" in result.stdout

    assert _invoke(runner, "clear", "--yes").exit_code == 0
    assert _items(runner) == []

    result = _invoke(runner, "import", str(target))
    assert result.exit_code == 0
    assert "2 created" in result.stdout
    assert sorted(item["product"]["name"] for item in _items(runner)) == ["Pâtes", "Riz"]


def test_export_shopping_list_to_stdout(runner):
    _invoke(runner, "add", "Pommes", "--brand", "Vergers", "--category", "fruits & legumes")

    result = _invoke(runner, "export", "--format", "shopping-list")

    assert result.exit_code == 0
    assert "• Pommes (x1) – Fruits & Légumes" in result.stdout


def test_import_of_empty_payload_fails(runner, tmp_path):
    source = tmp_path / "empty.json"
    source.write_text("[]", encoding="utf-8")

    result = _invoke(runner, "import", str(source))

    assert result.exit_code == 1


def test_stats_and_watch_once(runner):
    _invoke(runner, "add", "Jambon", "--brand", "Herta", "--expiry", "2000-01-01")

    result = _invoke(runner, "stats")
    assert result.exit_code == 0
    assert json.loads(result.stdout)["expired_count"] == 1

    result = _invoke(runner, "watch", "--once")
    assert result.exit_code == 0
    assert "1 expired" in result.stdout


def test_metrics_command(runner):
    _invoke(runner, "add", "Sel", "--brand", "La Baleine")

    result = _invoke(runner, "metrics")

    assert result.exit_code == 0
    assert "frigo_store_operations_total" in result.stdout
