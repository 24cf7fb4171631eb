# tests/test_main.py
#
# Tests for the entry point wiring and submission handling in main.py.

import pytest
from unittest.mock import AsyncMock, MagicMock

import main
from termwise.command_resolver import ResolveError


@pytest.fixture
def ai_client():
    client = MagicMock()
    client.request_command = AsyncMock(return_value="df -h")
    client.is_available = AsyncMock(return_value=True)
    return client


@pytest.fixture
def core(base_config, ai_client, mocker, tmp_path):
    core = main.TermwiseCore(base_config, history=["git status"], ai_client=ai_client, cwd=str(tmp_path))
    mocker.patch.object(core.path_cache, 'get_path_commands', return_value=["ls", "df", "git", "gitk"])
    return core


def test_core_uses_configured_components(core):
    assert core.resolver.ai_enabled is True
    assert core.validator.path_cache is core.path_cache
    assert core.aggregator.path_cache is core.path_cache
    assert core.aggregator.max_results == 20
    assert len(core.ai_cache) == 0


def test_core_without_ai_does_not_build_client(base_config, mocker):
    mock_client_cls = mocker.patch('main.AICommandClient')
    core = main.TermwiseCore(base_config, ai_enabled=False)
    mock_client_cls.assert_not_called()
    assert core.resolver.ai_enabled is False


def test_core_completer_suggests_from_history(core):
    suggestions = core.aggregator.suggest("git", history=core.history)
    assert [c.text for c in suggestions][:2] == ["git", "git status"]
    assert core.completer().history == ["git status"]


def test_format_suggestions(core):
    text = main.format_suggestions(core.aggregator.suggest("gitk"))
    assert text.splitlines() == ["100  path      gitk"]


@pytest.mark.asyncio
async def test_known_command_passes_through(core, ai_client):
    assert await main.handle_submission(core, "  ls -la ") == "$ ls -la"
    ai_client.request_command.assert_not_called()


@pytest.mark.asyncio
async def test_local_pattern_submission(core):
    assert await main.handle_submission(core, "remove folder trial") == "✅ [local] rm -r trial"


@pytest.mark.asyncio
async def test_ai_submission(core, ai_client):
    assert await main.handle_submission(core, "show disk usage") == "✅ [ai] df -h"
    assert await main.handle_submission(core, "show disk usage") == "✅ [cache] df -h"
    ai_client.request_command.assert_awaited_once()


@pytest.mark.asyncio
async def test_validation_failure_submission(core, ai_client):
    ai_client.request_command.return_value = "frobnicate --all"
    assert await main.handle_submission(core, "frobnicate everything") == "❌ frobnicate --all: command not found"


@pytest.mark.asyncio
async def test_gibberish_submission(core):
    line = await main.handle_submission(core, "sdsdsdsdsd")
    assert line.startswith("🤔 sdsdsdsdsd: ")


@pytest.mark.asyncio
async def test_unavailable_submission(core, ai_client):
    ai_client.request_command.side_effect = ConnectionError("down")
    line = await main.handle_submission(core, "show disk usage")
    assert line.startswith("⚠️ The AI service is unavailable.")


def test_parse_args():
    args = main.parse_args(["--resolve", "list files", "--no-ai"])
    assert args.resolve == "list files"
    assert args.no_ai is True
    assert args.suggest is None
    assert args.no_fuzzy is False


def test_main_resolve_exit_codes(mocker, base_config, capsys):
    mocker.patch('main.config_handler.load_configuration', return_value=base_config)
    mocker.patch('main.setup_logging')
    mocker.patch('main.FileHistory')

    assert main.main(["--resolve", "list files", "--no-ai"]) == 0
    assert capsys.readouterr().out.strip() == "ls"

    assert main.main(["--resolve", "frobnicate everything", "--no-ai"]) == 2
    assert ResolveError.NO_MATCH.value in capsys.readouterr().err


def test_main_missing_config(mocker, capsys):
    mocker.patch('main.config_handler.load_configuration', side_effect=FileNotFoundError("no default config"))
    assert main.main(["--suggest", "git"]) == 1
    assert "no default config" in capsys.readouterr().err


@pytest.mark.asyncio
async def test_no_match_lists_matching_files(core, tmp_path):
    (tmp_path / "README.md").write_text("x")
    (tmp_path / "READINGS").mkdir()
    core.resolver.ai_enabled = False

    line = await main.handle_submission(core, "show READ")

    first, files = line.splitlines()
    assert first.startswith("🤔 show READ: ")
    assert files == "📁 README.md  READINGS/"


@pytest.mark.asyncio
async def test_validation_failure_lists_matching_files(core, ai_client, tmp_path):
    (tmp_path / "notes.txt").write_text("x")
    ai_client.request_command.return_value = "frobnicate notes.txt"

    line = await main.handle_submission(core, "frobnicate the notes")

    assert line.splitlines() == ["❌ frobnicate notes.txt: command not found", "📁 notes.txt"]


@pytest.mark.asyncio
async def test_check_ai_keeps_ai_when_server_answers(core, ai_client):
    assert await core.check_ai() is True
    assert core.resolver.ai_enabled is True


@pytest.mark.asyncio
async def test_check_ai_disables_ai_when_server_unreachable(core, ai_client):
    ai_client.is_available.return_value = False

    assert await core.check_ai() is False
    assert core.resolver.ai_enabled is False
    result = await core.resolver.resolve("show disk usage")
    assert result.error == ResolveError.NO_MATCH
    ai_client.request_command.assert_not_called()


@pytest.mark.asyncio
async def test_resolve_once_checks_ai_first(core, ai_client):
    ai_client.is_available.return_value = False
    result = await main.resolve_once(core, "list files")
    assert result.command == "ls"
    ai_client.is_available.assert_awaited_once()
