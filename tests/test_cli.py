"""
CLI Tests

Runs the command-line entry point against the in-memory log.
"""

import pytest

from feedweave import FeedWeaveEngine, cli

from .fixtures import MISSING, NESTED_Z, create_thread_store, fixed_clock


@pytest.fixture
def in_memory_engine(monkeypatch):
    store = create_thread_store()
    monkeypatch.setattr(
        cli, "FeedWeaveEngine",
        lambda config: FeedWeaveEngine.with_client(store, config, clock=fixed_clock)
    )
    return store


class TestCommands:

    def test_thread(self, in_memory_engine, capsys):
        assert cli.main(["thread", NESTED_Z]) == 0
        lines = capsys.readouterr().out.splitlines()
        assert lines[0].startswith("- alice posted [20m]")
        assert lines[1] == "    hello"
        assert lines[-1].startswith("[INFO] 3 messages")
        # nested reply is indented twice and marked as the requested message
        assert any(line.startswith("    > @carol.ed25519 replied to message") for line in lines)

    def test_missing_message(self, in_memory_engine, capsys):
        assert cli.main(["get", MISSING]) == 1
        assert "[FAIL] MESSAGE_NOT_FOUND" in capsys.readouterr().out

    def test_empty_result(self, in_memory_engine, capsys):
        assert cli.main(["hashtag", "nothing"]) == 0
        assert "Nothing found" in capsys.readouterr().out

    def test_target_required(self, in_memory_engine):
        with pytest.raises(SystemExit):
            cli.main(["feed"])
