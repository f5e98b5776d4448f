"""Tests for the command line interface."""

import json
from unittest.mock import AsyncMock, patch

from click.testing import CliRunner

from hyper_notebook.cli import main
from hyper_notebook.relay import FAILURE_MESSAGE, RelayOutcome, RelayStatus


def test_extract_prints_descriptors(tmp_path, a2ui_reply):
    path = tmp_path / "reply.md"
    path.write_text(a2ui_reply, encoding="utf-8")

    result = CliRunner().invoke(main, ["extract", str(path)])

    assert result.exit_code == 0
    assert [c["type"] for c in json.loads(result.output)] == ["progress", "card", "table"]


def test_extract_html_and_strip(tmp_path, a2ui_reply):
    path = tmp_path / "reply.md"
    path.write_text(a2ui_reply, encoding="utf-8")
    runner = CliRunner()

    html = runner.invoke(main, ["extract", str(path), "--html"]).output
    assert 'data-component-id="p1"' in html

    stripped = runner.invoke(main, ["extract", str(path), "--strip"]).output
    assert "progress" not in stripped
    assert "```python" in stripped


def test_chat_exits_nonzero_on_failure():
    failed = RelayOutcome(RelayStatus.FAILED, FAILURE_MESSAGE)
    with patch("hyper_notebook.cli._chat_once", new=AsyncMock(return_value=failed)):
        result = CliRunner().invoke(main, ["chat", "hello", "--url", "http://127.0.0.1:1"])
    assert result.exit_code == 1
