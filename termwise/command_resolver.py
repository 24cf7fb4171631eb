# --- API DOCUMENTATION for termwise/command_resolver.py ---
#
# **Purpose:** Turns a natural-language phrase into a validated shell command.
# Stages run strictly in order and stop at the first success:
#   1. gibberish filter            -> NO_MATCH
#   2. local pattern tables        -> command (source "local")
#   3. AI response cache           -> command (source "cache"), validated
#   4. remote AI call (10s bound)  -> TIMEOUT / AI_UNAVAILABLE on failure
#   5. response cleaning + caching -> NO_MATCH if the model declined
#   6. program-name validation     -> VALIDATION_FAILED if unknown
#
# **Public Classes:**
#
# class ResolveError(Enum): NO_MATCH, AI_UNAVAILABLE, VALIDATION_FAILED, TIMEOUT
#
# class ResolveResult:
#     """command or error, plus the stage that produced it. `ok` is True on success."""
#
# class CommandValidator:
#     def is_known_program(self, command: str) -> bool:
#         """True if the command's leading program is on PATH, an executable path,
#            or a hardcoded builtin."""
#
# class CommandResolver:
#     async def resolve(self, phrase: str) -> ResolveResult:
#         """Never raises. At most one AI request is in flight per normalized phrase;
#            concurrent callers for the same phrase share its result."""
#
# **Public Functions:**
#
# def is_gibberish(text: str) -> bool
# def is_natural_language(text: str) -> bool
# def clean_ai_response(raw: str) -> str
#
# --- END API DOCUMENTATION ---

import asyncio
import os
import re
import shlex
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Optional

import httpx
import ollama

from termwise import candidate_sources
from termwise.pattern_resolver import resolve_local
from termwise.ttl_cache import normalize_phrase

logger = logging.getLogger(__name__)

SOURCE_LOCAL = "local"
SOURCE_CACHE = "cache"
SOURCE_AI = "ai"
SOURCE_NONE = "none"

AI_DECLINED_SENTINEL = "I_DONT_UNDERSTAND"
DEFAULT_MAX_COMMAND_LENGTH = 200
DEFAULT_AI_TIMEOUT_SECONDS = 10


class ResolveError(Enum):
    NO_MATCH = "no_match"
    AI_UNAVAILABLE = "ai_unavailable"
    VALIDATION_FAILED = "validation_failed"
    TIMEOUT = "timeout"


ERROR_MESSAGES = {
    ResolveError.NO_MATCH: "I don't understand that request. Please try rephrasing your command.",
    ResolveError.AI_UNAVAILABLE: "The AI service is unavailable.",
    ResolveError.VALIDATION_FAILED: "command not found",
    ResolveError.TIMEOUT: "The AI service did not answer in time.",
}


@dataclass(frozen=True)
class ResolveResult:
    command: Optional[str] = None
    error: Optional[ResolveError] = None
    source: str = SOURCE_NONE
    detail: str = ""

    @property
    def ok(self) -> bool:
        return self.error is None and self.command is not None

    @classmethod
    def success(cls, command: str, source: str) -> "ResolveResult":
        return cls(command=command, source=source)

    @classmethod
    def failure(cls, error: ResolveError, source: str = SOURCE_NONE, detail: str = "",
                command: Optional[str] = None) -> "ResolveResult":
        return cls(command=command, error=error, source=source, detail=detail or ERROR_MESSAGES[error])


# --- Lexical checks ---

_COMMAND_WORDS = ("mkdir", "ls", "cd", "rm", "cp", "mv", "git", "curl", "wget",
                  "sudo", "chmod", "grep", "open")
_NATURAL_INDICATORS = (
    "create a", "make a", "delete", "remove", "list", "show me", "find",
    "search for", "copy", "move", "download", "install", "update",
    "how to", "i want to", "can you", "please", "help me",
    "open this", "open file", "open in", "launch", "start",
    "open folder", "open current", "open here", "open directory",
    "cursor", "vscode", "editor", "ide",
)
_MEANINGFUL_WORDS = ("open", "cursor", "vscode", "editor", "ide", "folder", "directory",
                     "file", "this", "here", "current")
_INCOHERENT_PATTERNS = (
    "how hello", "hello how", "what hello", "hello what",
    "why hello", "hello why", "when hello", "hello when",
    "where hello", "hello where", "who hello", "hello who",
    "how what", "what how", "why what", "what why",
    "how are", "what are", "why are", "when are", "where are", "who are",
    "hello world", "world hello", "test hello", "hello test",
)
_QUESTION_WORDS = {"how", "what", "why", "when", "where", "who", "which"}
_ACTION_WORDS = {"create", "make", "delete", "remove", "list", "show", "find", "search",
                 "copy", "move", "download", "install", "update", "open", "close", "start", "stop"}
_WORD_TOKEN_RE = re.compile(r"[a-z]{2,}")


def is_gibberish(text: str) -> bool:
    """Minimal lexical sanity check for a phrase."""
    text = text.strip().lower()
    if len(text) < 2:
        return True
    if any(word in text for word in _MEANINGFUL_WORDS):
        return False
    if not _WORD_TOKEN_RE.search(text):
        return True

    # Runs of the same character ("aaaa").
    run = 1
    for prev, cur in zip(text, text[1:]):
        run = run + 1 if cur == prev else 1
        if run >= 4:
            return True

    # Two-character alternation ("sdsdsd").
    if len(text) >= 6 and all(text[i] == text[i - 2] for i in range(2, len(text))):
        return True

    if any(pattern in text for pattern in _INCOHERENT_PATTERNS):
        return True

    words = text.split()
    if len(words) <= 3:
        has_question = any(w in _QUESTION_WORDS for w in words)
        has_action = any(w in _ACTION_WORDS for w in words)
        if has_question and not has_action:
            return True
    return False


def is_natural_language(text: str) -> bool:
    """Heuristic used by the front-end to route input to the resolver."""
    lowered = text.strip().lower()
    if lowered.startswith(_COMMAND_WORDS):
        return False
    if is_gibberish(lowered):
        return False
    return any(indicator in lowered for indicator in _NATURAL_INDICATORS)


_FENCE_RE = re.compile(r"^```[\w+-]*\s*|\s*```$")
_LABEL_RE = re.compile(r"^(?:command|output)\s*:\s*", re.IGNORECASE)


def clean_ai_response(raw: str) -> str:
    """Strips markdown fences, labels, prompts and wrapping quotes from a model answer."""
    text = (raw or "").strip()
    text = _FENCE_RE.sub("", text).strip()
    lines = [line.strip() for line in text.splitlines() if line.strip()]
    if not lines:
        return ""
    command = _LABEL_RE.sub("", lines[0])
    if command.startswith("$ "):
        command = command[2:].strip()
    for _ in range(2):
        if len(command) >= 2 and command[0] == command[-1] and command[0] in "`\"'":
            command = command[1:-1].strip()
    return command


# --- Validation ---

class CommandValidator:
    def __init__(self, config: dict, path_cache):
        section = config.get("validation", {})
        self.path_cache = path_cache
        self.builtins = set(candidate_sources.HARDCODED_COMMANDS) | set(section.get("builtins", []))

    @staticmethod
    def program_name(command: str) -> Optional[str]:
        try:
            tokens = shlex.split(command)
        except ValueError:
            tokens = command.split()
        for token in tokens:
            # Leading VAR=value assignments are not the program.
            if re.match(r"^[A-Za-z_][A-Za-z0-9_]*=", token):
                continue
            return token
        return None

    def is_known_program(self, command: str) -> bool:
        program = self.program_name(command)
        if not program or program.startswith('-'):
            return False
        if program in self.builtins:
            return True
        if '/' in program:
            path = os.path.expanduser(program)
            return os.path.isfile(path) and os.access(path, os.X_OK)
        return program in self.path_cache.get_path_commands()


# --- Resolver ---

class CommandResolver:
    def __init__(self, config: dict, validator: CommandValidator, ai_cache, ai_client=None,
                 ai_enabled: Optional[bool] = None):
        ai_section = config.get("ai", {})
        self.validator = validator
        self.ai_cache = ai_cache
        self.ai_client = ai_client
        self.ai_enabled = ai_section.get("enabled", True) if ai_enabled is None else ai_enabled
        self.timeout_seconds = ai_section.get("timeout_seconds", DEFAULT_AI_TIMEOUT_SECONDS)
        self.max_command_length = config.get("validation", {}).get("max_command_length", DEFAULT_MAX_COMMAND_LENGTH)
        self._in_flight: Dict[str, asyncio.Task] = {}

    async def resolve(self, phrase: str) -> ResolveResult:
        text = " ".join(phrase.split())
        if is_gibberish(text):
            logger.info(f"Rejected as gibberish: '{phrase}'")
            return ResolveResult.failure(ResolveError.NO_MATCH)

        local_command = resolve_local(text)
        if local_command:
            logger.info(f"Resolved locally: '{text}' -> '{local_command}'")
            return ResolveResult.success(local_command, SOURCE_LOCAL)

        cached = self.ai_cache.get(text)
        if cached is not None:
            logger.info(f"AI cache hit: '{text}' -> '{cached}'")
            return self._validate(cached, SOURCE_CACHE)

        if not self.ai_enabled or self.ai_client is None:
            logger.info(f"No local match for '{text}' and AI is disabled.")
            return ResolveResult.failure(ResolveError.NO_MATCH)

        key = normalize_phrase(text)
        task = self._in_flight.get(key)
        if task is None:
            task = asyncio.ensure_future(self._resolve_with_ai(text))
            self._in_flight[key] = task
            task.add_done_callback(lambda _t, k=key: self._in_flight.pop(k, None))
        else:
            logger.debug(f"Joining in-flight AI request for '{key}'")
        return await asyncio.shield(task)

    async def _resolve_with_ai(self, text: str) -> ResolveResult:
        try:
            raw = await asyncio.wait_for(self.ai_client.request_command(text), timeout=self.timeout_seconds)
        except (asyncio.TimeoutError, httpx.TimeoutException):
            logger.warning(f"AI request for '{text}' timed out after {self.timeout_seconds}s.")
            return ResolveResult.failure(ResolveError.TIMEOUT, SOURCE_AI)
        except (ollama.ResponseError, ollama.RequestError, httpx.HTTPError, ConnectionError, OSError) as e:
            logger.error(f"AI request for '{text}' failed: {e}")
            return ResolveResult.failure(ResolveError.AI_UNAVAILABLE, SOURCE_AI, detail=f"{ERROR_MESSAGES[ResolveError.AI_UNAVAILABLE]} ({e})")
        except Exception as e:
            # Malformed provider replies surface as KeyError/TypeError and the like.
            logger.error(f"Unexpected error during AI request for '{text}': {e}", exc_info=True)
            return ResolveResult.failure(ResolveError.AI_UNAVAILABLE, SOURCE_AI)

        command = clean_ai_response(raw)
        if (not command
                or command == AI_DECLINED_SENTINEL
                or command.lower() == text.lower()
                or len(command) > self.max_command_length
                or not any(ch.isalnum() for ch in command)):
            logger.info(f"AI produced no usable command for '{text}'. Raw: {raw!r}")
            return ResolveResult.failure(ResolveError.NO_MATCH, SOURCE_AI)

        self.ai_cache.put(text, command)
        return self._validate(command, SOURCE_AI)

    def _validate(self, command: str, source: str) -> ResolveResult:
        if self.validator.is_known_program(command):
            return ResolveResult.success(command, source)
        logger.warning(f"Command '{command}' from {source} failed validation: unknown program.")
        return ResolveResult.failure(ResolveError.VALIDATION_FAILED, source, command=command)
