# --- API DOCUMENTATION for termwise/candidate_sources.py ---
#
# **Purpose:** The raw providers behind autocomplete. Command-word providers
# return plain text candidates; scoring and merging belong to
# termwise/suggestion_engine.py. Flag and file providers serve the words
# after the first one.
#
# **Public Functions:**
#
# def history_candidates(prefix: str, history, limit: int = 1000) -> list[str]:
#     """Previously executed command lines starting with prefix, most recent first.
#        `history` is an iterable of strings or a prompt_toolkit History."""
#
# def scan_path_executables(path_value: str) -> list[str]:
#     """Executable file names found in the directories of a PATH string.
#        Unreadable directories are skipped."""
#
# def flag_candidates(command: str, word: str) -> list[str]:
#     """Known flags/subcommands of command (COMMAND_FLAGS) starting with word."""
#
# def file_candidates(prefix: str, cwd: str = None, limit: int = 5) -> list[str]:
#     """File and directory names completing prefix, directories with a trailing '/'."""
#
# def path_completer(cwd: str = None) -> PathCompleter:
#     """prompt_toolkit PathCompleter rooted at cwd (default: the process cwd)."""
#
# **Public Classes:**
#
# class PackageCommandSource:
#     """Command names exposed by installed packages. Scanned once, persisted
#        to a JSON cache file and reloaded from it on later starts."""
#
# **Key Global Constants/Variables:**
# - HARDCODED_COMMANDS: tuple of common shell commands always offered.
# - COMMAND_FLAGS: per-command flags and subcommands offered after the first word.
#
# --- END API DOCUMENTATION ---

import os
import logging
from typing import Iterable, List, Optional

from prompt_toolkit.completion import CompleteEvent, PathCompleter
from prompt_toolkit.document import Document

from termwise import config_handler

logger = logging.getLogger(__name__)

HARDCODED_COMMANDS = (
    "ls", "cd", "pwd", "mkdir", "rm", "cp", "mv", "cat",
    "grep", "find", "chmod", "ps", "kill", "tar", "curl", "git",
    "clear", "exit", "history", "help",
)

COMMAND_FLAGS = {
    "ls": ("-l", "-a", "-la", "-lh"),
    "rm": ("-r", "-f", "-rf"),
    "cp": ("-r", "-v"),
    "mv": ("-v",),
    "grep": ("-i", "-r", "-n"),
    "git": ("status", "add", "commit", "push", "pull"),
}

FILE_COMPLETION_LIMIT = 5


def flag_candidates(command: str, word: str) -> List[str]:
    if not word:
        return []
    return [flag for flag in COMMAND_FLAGS.get(command, ()) if flag.startswith(word) and flag != word]


def path_completer(cwd: Optional[str] = None) -> PathCompleter:
    return PathCompleter(expanduser=True, get_paths=lambda: [cwd or os.getcwd()])


def file_candidates(prefix: str, cwd: Optional[str] = None, limit: int = FILE_COMPLETION_LIMIT) -> List[str]:
    if not prefix:
        return []
    # Keep the directory part exactly as typed ("~/", "src/").
    head = prefix[:len(prefix) - len(os.path.basename(prefix))]
    names = []
    for completion in path_completer(cwd).get_completions(Document(prefix), CompleteEvent()):
        name = head + completion.display_text
        if name == prefix:
            continue
        names.append(name)
        if limit and len(names) >= limit:
            break
    return names


def _history_strings(history) -> Iterable[str]:
    # prompt_toolkit History objects expose get_strings() (oldest first).
    get_strings = getattr(history, "get_strings", None)
    if callable(get_strings):
        return get_strings()
    return history


def history_candidates(prefix: str, history, limit: int = 1000) -> List[str]:
    if history is None:
        return []
    entries = list(_history_strings(history))
    if limit:
        entries = entries[-limit:]
    seen = set()
    matches = []
    for entry in reversed(entries):
        entry = entry.strip()
        if entry and entry.startswith(prefix) and entry not in seen:
            seen.add(entry)
            matches.append(entry)
    return matches


def _executables_in(directory: str) -> List[str]:
    names = []
    with os.scandir(directory) as it:
        for entry in it:
            try:
                if entry.is_file() and os.access(entry.path, os.X_OK):
                    names.append(entry.name)
            except OSError:
                continue
    return names


def scan_path_executables(path_value: str) -> List[str]:
    names = []
    for directory in path_value.split(os.pathsep):
        if not directory:
            continue
        try:
            names.extend(_executables_in(directory))
        except OSError as e:
            logger.debug(f"Skipping unreadable PATH directory '{directory}': {e}")
    return list(dict.fromkeys(names))


class PackageCommandSource:
    def __init__(self, bin_dirs: Iterable[str], cache_file: Optional[str] = None):
        self.bin_dirs = [os.path.expanduser(d) for d in bin_dirs]
        self.cache_file = cache_file
        self._commands: Optional[List[str]] = None

    @classmethod
    def from_config(cls, config: dict, base_dir: str) -> "PackageCommandSource":
        section = config.get("package_sources", {})
        cache_file = section.get("cache_file")
        if cache_file and not os.path.isabs(cache_file):
            cache_file = os.path.join(base_dir, cache_file)
        return cls(section.get("bin_dirs", []), cache_file)

    def get_commands(self) -> List[str]:
        if self._commands is None:
            self._commands = self._load_cached() or self.rescan()
        return self._commands

    def rescan(self) -> List[str]:
        names = []
        for directory in self.bin_dirs:
            if not os.path.isdir(directory):
                continue
            try:
                names.extend(_executables_in(directory))
            except OSError as e:
                logger.debug(f"Skipping unreadable package directory '{directory}': {e}")
        self._commands = sorted(set(names))
        logger.info(f"Package command scan found {len(self._commands)} commands in {len(self.bin_dirs)} directories.")
        if self.cache_file:
            config_handler.save_json_file(self.cache_file, {"bin_dirs": self.bin_dirs, "commands": self._commands})
        return self._commands

    def _load_cached(self) -> Optional[List[str]]:
        if not self.cache_file:
            return None
        data = config_handler.load_jsonc_file(self.cache_file)
        if not isinstance(data, dict) or data.get("bin_dirs") != self.bin_dirs:
            return None
        commands = data.get("commands")
        if not isinstance(commands, list):
            logger.warning(f"Package command cache {self.cache_file} is malformed. Rescanning.")
            return None
        logger.info(f"Loaded {len(commands)} package commands from {self.cache_file}")
        return [str(c) for c in commands]
