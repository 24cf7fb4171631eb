# main.py

from prompt_toolkit import PromptSession
from prompt_toolkit.history import FileHistory
from prompt_toolkit.patch_stdout import patch_stdout

import argparse
import asyncio
import logging
import os
import sys

from termwise import candidate_sources, config_handler
from termwise.ai_client import AICommandClient
from termwise.candidate_sources import PackageCommandSource, scan_path_executables
from termwise.command_resolver import CommandResolver, CommandValidator, ResolveError, is_natural_language
from termwise.suggestion_engine import SuggestionAggregator, SuggestionCompleter
from termwise.ttl_cache import AIResponseCache, PathScanCache

CONFIG_DIR = "config"
EXIT_WORDS = {"exit", "quit", "/exit", "/quit"}

SCRIPT_DIR = os.path.dirname(os.path.abspath(__file__))

logger = logging.getLogger(__name__)


def setup_logging(config: dict):
    log_dir = os.path.join(SCRIPT_DIR, config.get("paths", {}).get("log_dir", "logs"))
    os.makedirs(log_dir, exist_ok=True)
    # Log to a file only: anything written to the terminal would corrupt the prompt.
    logging.basicConfig(
        level=logging.DEBUG,
        format='%(asctime)s - %(levelname)s - %(filename)s:%(lineno)d - %(message)s',
        handlers=[logging.FileHandler(os.path.join(log_dir, "termwise.log"))]
    )


class TermwiseCore:
    """Wires the caches, sources, aggregator and resolver together from one config dict."""

    def __init__(self, config: dict, history=None, ai_enabled=None, ai_client=None, cwd=None):
        caches = config.get("caches", {})
        self.config = config
        self.history = history
        self.cwd = cwd
        self.path_cache = PathScanCache(scan_path_executables, ttl_seconds=caches.get("path_ttl_seconds", 30))
        self.ai_cache = AIResponseCache(caches.get("ai_ttl_seconds", 300), caches.get("ai_max_entries", 100))
        self.package_source = PackageCommandSource.from_config(config, SCRIPT_DIR)
        self.aggregator = SuggestionAggregator(config, self.path_cache, self.package_source, history)
        self.validator = CommandValidator(config, self.path_cache)
        if ai_enabled is None:
            ai_enabled = config.get("ai", {}).get("enabled", True)
        if ai_enabled and ai_client is None:
            ai_client = AICommandClient(config)
        self.resolver = CommandResolver(config, self.validator, self.ai_cache, ai_client, ai_enabled=ai_enabled)

    def completer(self) -> SuggestionCompleter:
        return SuggestionCompleter(self.aggregator, self.history, cwd=self.cwd)

    async def check_ai(self) -> bool:
        """Turns the AI fallback off for this session if the Ollama server does not answer."""
        client = self.resolver.ai_client
        if not self.resolver.ai_enabled or client is None:
            return False
        if await client.is_available():
            return True
        logger.warning("Ollama server unreachable at startup. AI fallback disabled for this session.")
        self.resolver.ai_enabled = False
        return False


def format_suggestions(candidates) -> str:
    return "\n".join(f"{c.score:>3}  {c.source.value:<9} {c.text}" for c in candidates)


async def handle_submission(core: TermwiseCore, user_input: str) -> str:
    """Returns the line to show for a submitted input.

    Input that already starts with a known program is passed through as a
    ready-to-run command; everything else goes through the resolver.
    """
    text = user_input.strip()
    if core.validator.is_known_program(text) and not is_natural_language(text):
        return f"$ {text}"

    result = await core.resolver.resolve(text)
    if result.ok:
        return f"✅ [{result.source}] {result.command}"
    if result.error == ResolveError.VALIDATION_FAILED:
        return _with_file_completions(f"❌ {result.command}: {result.detail}", core, text)
    if result.error == ResolveError.NO_MATCH:
        return _with_file_completions(f"🤔 {text}: {result.detail}", core, text)
    return f"⚠️ {result.detail}"


def _with_file_completions(line: str, core: TermwiseCore, text: str) -> str:
    words = text.split()
    matches = candidate_sources.file_candidates(words[-1], cwd=core.cwd) if words else []
    if not matches:
        return line
    return f"{line}\n📁 {'  '.join(matches)}"


async def resolve_once(core: TermwiseCore, phrase: str):
    await core.check_ai()
    return await core.resolver.resolve(phrase)


async def run_interactive(core: TermwiseCore, history_path: str):
    if core.resolver.ai_enabled and not await core.check_ai():
        print("⚠️ Ollama is not reachable. Natural-language fallback is limited to built-in phrases.")
    session = PromptSession(
        history=core.history if core.history is not None else FileHistory(history_path),
        completer=core.completer(),
        complete_while_typing=True,
    )
    logger.info("Interactive session started.")
    while True:
        try:
            with patch_stdout():
                user_input = await session.prompt_async("termwise> ")
        except (EOFError, KeyboardInterrupt):
            break
        if user_input.strip().lower() in EXIT_WORDS:
            break
        if not user_input.strip():
            continue
        print(await handle_submission(core, user_input))
    logger.info("Interactive session ended.")


def parse_args(argv=None):
    parser = argparse.ArgumentParser(
        description="Autocomplete and natural-language command resolution for the terminal."
    )
    parser.add_argument('--suggest', metavar='TEXT', help='Print the ranked suggestion list for TEXT and exit.')
    parser.add_argument('--resolve', metavar='PHRASE', help='Resolve a natural-language PHRASE to a command and exit.')
    parser.add_argument('--no-ai', action='store_true', help='Disable the remote AI fallback.')
    parser.add_argument('--no-fuzzy', action='store_true', help='Disable fuzzy suggestions.')
    return parser.parse_args(argv)


def main(argv=None) -> int:
    args = parse_args(argv)
    try:
        config = config_handler.load_configuration(os.path.join(SCRIPT_DIR, CONFIG_DIR))
    except FileNotFoundError as e:
        print(f"❌ {e}", file=sys.stderr)
        return 1
    setup_logging(config)

    history_path = os.path.join(SCRIPT_DIR, config.get("paths", {}).get("history_file", ".termwise_history"))
    history = FileHistory(history_path)
    core = TermwiseCore(config, history=history, ai_enabled=False if args.no_ai else None)
    if args.no_fuzzy:
        core.aggregator.fuzzy_enabled = False

    if args.suggest is not None:
        # No PromptSession has loaded the history here, so read the file directly.
        past_commands = list(reversed(list(history.load_history_strings())))
        print(format_suggestions(core.aggregator.suggest(args.suggest, history=past_commands)))
        return 0
    if args.resolve is not None:
        result = asyncio.run(resolve_once(core, args.resolve))
        if result.ok:
            print(result.command)
            return 0
        print(f"❌ {result.error.value}: {result.detail}", file=sys.stderr)
        return 2

    asyncio.run(run_interactive(core, history_path))
    return 0


if __name__ == "__main__":
    sys.exit(main())
