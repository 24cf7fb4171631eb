# --- API DOCUMENTATION for termwise/suggestion_engine.py ---
#
# **Purpose:** Builds the ranked suggestion list shown while the user types.
# Queries every candidate source, runs the fuzzy matcher when the exact pass
# comes up short, merges duplicates by text and returns at most
# `max_results` candidates ordered by score.
#
# **Public Classes:**
#
# class CandidateSource(Enum):
#     """Where a candidate came from; declaration order is the tie-break priority."""
#
# class Candidate:
#     """Immutable (text, source, score) triple."""
#
# class SuggestionAggregator:
#     def __init__(self, config, path_cache, package_source=None, history=None): ...
#
#     def suggest(self, query_prefix: str, history=None, fuzzy_enabled=None) -> list[Candidate]:
#         """
#         Returns the suggestion list for query_prefix. Never raises: a source
#         that fails contributes no candidates.
#         """
#
# class SuggestionCompleter(prompt_toolkit.completion.Completer):
#     """Adapter exposing SuggestionAggregator to a prompt_toolkit PromptSession,
#        plus flag completion and filesystem fallback for the word under the cursor."""
#
# --- END API DOCUMENTATION ---

import logging
import time
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, Iterable, List, Optional, Tuple

from prompt_toolkit.completion import Completer, Completion
from prompt_toolkit.document import Document

from termwise import candidate_sources, fuzzy_matcher

logger = logging.getLogger(__name__)

DEFAULT_MAX_RESULTS = 20
DEFAULT_FUZZY_MIN_EXACT_CANDIDATES = 5
DEFAULT_FUZZY_MIN_QUERY_LENGTH = 2
EXACT_MATCH_SCORE = 100
FUZZY_MIN_SCORE = 25
FUZZY_MAX_SCORE = 60


class CandidateSource(Enum):
    HARDCODED = "hardcoded"
    HISTORY = "history"
    PATH = "path"
    PACKAGE = "package"
    FUZZY = "fuzzy"

    @property
    def priority(self) -> int:
        return _SOURCE_ORDER.index(self)


_SOURCE_ORDER = list(CandidateSource)

SOURCE_SCORES = {
    CandidateSource.HARDCODED: 90,
    CandidateSource.HISTORY: 85,
    CandidateSource.PATH: 80,
    CandidateSource.PACKAGE: 70,
}


@dataclass(frozen=True)
class Candidate:
    text: str
    source: CandidateSource
    score: int

    def __post_init__(self):
        if not 0 <= self.score <= 100:
            raise ValueError(f"Candidate score out of range: {self.score}")

    def sort_key(self) -> Tuple[int, int, str]:
        return (-self.score, self.source.priority, self.text)

    def outranks(self, other: "Candidate") -> bool:
        return self.sort_key() < other.sort_key()


def merge_candidates(candidates: Iterable[Candidate]) -> Dict[str, Candidate]:
    """Deduplicates by text, keeping the best-ranked instance of each."""
    merged: Dict[str, Candidate] = {}
    for candidate in candidates:
        current = merged.get(candidate.text)
        if current is None or candidate.outranks(current):
            merged[candidate.text] = candidate
    return merged


def rank_candidates(candidates: Iterable[Candidate], max_results: int = DEFAULT_MAX_RESULTS) -> List[Candidate]:
    merged = merge_candidates(candidates)
    return sorted(merged.values(), key=Candidate.sort_key)[:max_results]


class SuggestionAggregator:
    def __init__(self, config: dict, path_cache, package_source=None, history=None):
        settings = config.get("suggestions", {})
        self.max_results = settings.get("max_results", DEFAULT_MAX_RESULTS)
        self.fuzzy_enabled = settings.get("fuzzy_enabled", True)
        self.fuzzy_min_exact_candidates = settings.get("fuzzy_min_exact_candidates", DEFAULT_FUZZY_MIN_EXACT_CANDIDATES)
        self.fuzzy_min_query_length = settings.get("fuzzy_min_query_length", DEFAULT_FUZZY_MIN_QUERY_LENGTH)
        self.history_scan_limit = settings.get("history_scan_limit", 1000)
        self.path_cache = path_cache
        self.package_source = package_source
        self.history = history

    # --- Source pools ---

    def _pools(self, history) -> List[Tuple[CandidateSource, Callable[[], Iterable[str]]]]:
        pools = [
            (CandidateSource.HARDCODED, lambda: candidate_sources.HARDCODED_COMMANDS),
            (CandidateSource.HISTORY, lambda: candidate_sources.history_candidates("", history, self.history_scan_limit)),
            (CandidateSource.PATH, self.path_cache.get_path_commands),
        ]
        if self.package_source is not None:
            pools.append((CandidateSource.PACKAGE, self.package_source.get_commands))
        return pools

    def _safe_fetch(self, source: CandidateSource, fetch: Callable[[], Iterable[str]]) -> List[str]:
        try:
            return list(fetch())
        except Exception as e:
            logger.warning(f"Candidate source '{source.value}' failed and was skipped: {e}", exc_info=True)
            return []

    def _exact_candidates(self, query: str, pool_texts: Dict[CandidateSource, List[str]]) -> List[Candidate]:
        found = []
        for source, texts in pool_texts.items():
            base_score = SOURCE_SCORES[source]
            for text in texts:
                if text.startswith(query):
                    found.append(Candidate(text, source, EXACT_MATCH_SCORE if text == query else base_score))
        return found

    def _fuzzy_candidates(self, query: str, pool_texts: Dict[CandidateSource, List[str]], exclude: set) -> List[Candidate]:
        found = []
        for texts in pool_texts.values():
            for text in texts:
                if text in exclude:
                    continue
                raw = fuzzy_matcher.score(query, text)
                if raw == fuzzy_matcher.NO_MATCH_SCORE:
                    continue
                found.append(Candidate(text, CandidateSource.FUZZY, max(FUZZY_MIN_SCORE, min(raw, FUZZY_MAX_SCORE))))
        return found

    def suggest(self, query_prefix: str, history=None, fuzzy_enabled: Optional[bool] = None) -> List[Candidate]:
        start = time.perf_counter()
        query = query_prefix.lstrip()
        if not query:
            return []
        history = self.history if history is None else history
        fuzzy_enabled = self.fuzzy_enabled if fuzzy_enabled is None else fuzzy_enabled

        pool_texts = {source: self._safe_fetch(source, fetch) for source, fetch in self._pools(history)}

        candidates = self._exact_candidates(query, pool_texts)
        if (fuzzy_enabled
                and len(query) >= self.fuzzy_min_query_length
                and len({c.text for c in candidates}) < self.fuzzy_min_exact_candidates):
            candidates.extend(self._fuzzy_candidates(query, pool_texts, {c.text for c in candidates}))

        ranked = rank_candidates(candidates, self.max_results)
        logger.debug(f"suggest('{query}') -> {len(ranked)} candidates in {(time.perf_counter() - start) * 1000:.1f}ms")
        return ranked


class SuggestionCompleter(Completer):
    """Feeds the aggregator's ranked list into prompt_toolkit's completion menu.

    After the first word, known flags/subcommands of the command are offered
    for the word under the cursor. When nothing else matches, the word is
    completed against the filesystem.
    """

    def __init__(self, aggregator: SuggestionAggregator, history=None, cwd: Optional[str] = None):
        self.aggregator = aggregator
        self.history = history
        self.path_completer = candidate_sources.path_completer(cwd)

    def get_completions(self, document: Document, complete_event) -> Iterable[Completion]:
        text = document.text_before_cursor.lstrip()
        if not text:
            return
        found = False
        for candidate in self.aggregator.suggest(text, history=self.history):
            found = True
            # Fuzzy hits do not share the typed prefix, so they replace the whole input.
            yield Completion(
                candidate.text,
                start_position=-len(text),
                display_meta=f"{candidate.source.value} {candidate.score}",
            )

        word = document.get_word_before_cursor(WORD=True)
        if not word:
            return
        words = text.split()
        if len(words) > 1:
            for flag in candidate_sources.flag_candidates(words[0], word):
                found = True
                yield Completion(flag, start_position=-len(word), display_meta=f"{words[0]} flag")
        if not found:
            yield from self.path_completer.get_completions(Document(word), complete_event)
