"""Search index and relevance scoring over the module catalog.

Scoring is additive; a module scores for every rule it meets:

====================================  ======
exact id                              100
query is a substring of the name       50
query is a substring of displayName    40
query token is a whole name word       15
query is a substring of description    25
query is a substring of a tag          20
each query token found in keywords     10
====================================  ======

Modules scoring zero are not returned. Equal scores sort by id.
"""

from __future__ import annotations

import difflib
import logging
import re
from dataclasses import dataclass
from typing import Any, Iterable, Mapping

from stackreg.module import ModuleDescriptor, ModuleType
from stackreg.registry.compatibility import normalize_single_select

logger = logging.getLogger(__name__)

__all__ = ["SearchEngine", "SearchIndexEntry", "SearchResult", "tokenize"]

SCORE_EXACT_ID = 100
SCORE_NAME = 50
SCORE_DISPLAY_NAME = 40
SCORE_WHOLE_WORD = 15
SCORE_DESCRIPTION = 25
SCORE_TAG = 20
SCORE_KEYWORD = 10

_MIN_SUGGESTION_PREFIX = 2

_WORD_SPLIT_RE = re.compile(r"[^a-z0-9]+")
_ALNUM_RUN_RE = re.compile(r"[a-z]+|[0-9]+")

# Common spellings users type for well-known modules.
_KEYWORD_ALIASES: dict[str, tuple[str, ...]] = {
    "vue": ("vuejs", "vue.js", "vue3"),
    "react": ("reactjs", "react.js"),
    "supabase": ("supa", "supabase.io"),
    "tailwind": ("tailwindcss", "tw"),
    "auth": ("authentication", "auth0", "authorize"),
}


def tokenize(text: str) -> list[str]:
    """Lowercase word tokens of ``text``.

    Splits on non-alphanumerics, and additionally emits the letter and digit
    runs of mixed words: ``"Vue3 app"`` -> ``["vue3", "vue", "3", "app"]``.
    """
    tokens: dict[str, None] = {}
    for word in _WORD_SPLIT_RE.split(text.lower()):
        if not word:
            continue
        tokens.setdefault(word, None)
        runs = _ALNUM_RUN_RE.findall(word)
        if len(runs) > 1:
            for run in runs:
                tokens.setdefault(run, None)
    return list(tokens)


@dataclass(frozen=True)
class SearchIndexEntry:
    """Denormalised, lowercase view of one module used for scoring."""

    id: str
    name: str
    display_name: str
    description: str
    type: str
    category: str
    tags: tuple[str, ...]
    keywords: tuple[str, ...]
    provides: tuple[str, ...] = ()
    compatible_with: tuple[str, ...] = ()
    incompatible_with: tuple[str, ...] = ()

    @classmethod
    def from_descriptor(cls, module: ModuleDescriptor) -> SearchIndexEntry:
        tags = tuple(t.lower() for t in module.tags)
        provides = tuple(p.lower() for p in module.provides)
        keywords: dict[str, None] = {}
        for token in tokenize(module.id) + tokenize(module.display_name):
            keywords.setdefault(token, None)
        for word in (module.id, module.module_type.value, module.category, *tags, *provides):
            keywords.setdefault(word.lower(), None)
        for tag in tags:
            for token in tokenize(tag):
                keywords.setdefault(token, None)
        id_tokens = set(tokenize(module.id))
        for key, aliases in _KEYWORD_ALIASES.items():
            if key in id_tokens:
                for alias in aliases:
                    keywords.setdefault(alias, None)
        return cls(
            id=module.id,
            name=module.name,
            display_name=module.display_name,
            description=module.description,
            type=module.module_type.value,
            category=module.category,
            tags=tags,
            keywords=tuple(sorted(keywords)),
            provides=provides,
            compatible_with=module.compatible_with,
            incompatible_with=module.incompatible_with,
        )

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> SearchIndexEntry:
        return cls(
            id=data["id"],
            name=data["name"],
            display_name=data["displayName"],
            description=data.get("description", ""),
            type=data["type"],
            category=data.get("category", "other"),
            tags=tuple(data.get("tags", ())),
            keywords=tuple(data.get("keywords", ())),
            provides=tuple(data.get("provides", ())),
            compatible_with=tuple(data.get("compatibleWith", ())),
            incompatible_with=tuple(data.get("incompatibleWith", ())),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "displayName": self.display_name,
            "description": self.description,
            "type": self.type,
            "category": self.category,
            "tags": list(self.tags),
            "keywords": list(self.keywords),
            "provides": list(self.provides),
            "compatibleWith": list(self.compatible_with),
            "incompatibleWith": list(self.incompatible_with),
        }


@dataclass(frozen=True)
class SearchResult:
    """One ranked hit. ``module`` is set when the engine knows the descriptor."""

    id: str
    score: int
    matches: tuple[str, ...]
    module: ModuleDescriptor | None = None


def _type_value(value: str | ModuleType | None) -> str | None:
    if isinstance(value, ModuleType):
        return value.value
    return value


class SearchEngine:
    """Relevance-ranked lookup over a fixed set of modules.

    The index is rebuilt wholesale by :meth:`build_index` or
    :meth:`load_entries`; there is no incremental update.
    """

    def __init__(self) -> None:
        self._entries: dict[str, SearchIndexEntry] = {}
        self._modules: dict[str, ModuleDescriptor] = {}

    def build_index(self, modules: Iterable[ModuleDescriptor]) -> None:
        modules = list(modules)
        self._modules = {m.id: m for m in modules}
        self._entries = {m.id: SearchIndexEntry.from_descriptor(m) for m in modules}
        logger.debug("Built search index with %d entries", len(self._entries))

    def load_entries(
        self,
        entries: Iterable[SearchIndexEntry | Mapping[str, Any]],
        modules: Iterable[ModuleDescriptor] = (),
    ) -> None:
        """Install a previously exported index, e.g. one read from the cache."""
        loaded = [e if isinstance(e, SearchIndexEntry) else SearchIndexEntry.from_dict(e) for e in entries]
        self._entries = {e.id: e for e in loaded}
        self._modules = {m.id: m for m in modules}

    def entries(self) -> list[SearchIndexEntry]:
        """Index entries ordered by id."""
        return [self._entries[k] for k in sorted(self._entries)]

    def __len__(self) -> int:
        return len(self._entries)

    # ----- Search -----

    def search(
        self,
        query: str,
        type: str | ModuleType | None = None,
        category: str | None = None,
        limit: int | None = None,
    ) -> list[SearchResult]:
        """Rank modules against ``query``.

        Returns an empty list for a blank query. ``limit`` of None means
        unrestricted.
        """
        needle = query.strip().lower()
        if not needle:
            return []
        query_tokens = tokenize(needle)
        wanted_type = _type_value(type)

        results: list[SearchResult] = []
        for entry in self._entries.values():
            if wanted_type is not None and entry.type != wanted_type:
                continue
            if category is not None and entry.category != category:
                continue
            score, matches = self._score(entry, needle, query_tokens)
            if score > 0:
                results.append(SearchResult(entry.id, score, matches, self._modules.get(entry.id)))

        results.sort(key=lambda r: (-r.score, r.id))
        if limit is not None and limit >= 0:
            results = results[:limit]
        return results

    @staticmethod
    def _score(entry: SearchIndexEntry, needle: str, query_tokens: list[str]) -> tuple[int, tuple[str, ...]]:
        score = 0
        matches: list[str] = []

        if needle == entry.id:
            score += SCORE_EXACT_ID
            matches.append("id")
        if needle in entry.name.lower():
            score += SCORE_NAME
            matches.append("name")
        if needle in entry.display_name.lower():
            score += SCORE_DISPLAY_NAME
            matches.append("displayName")
        name_words = set(tokenize(entry.name)) | set(tokenize(entry.display_name))
        if any(token in name_words for token in query_tokens):
            score += SCORE_WHOLE_WORD
            matches.append("word")
        if needle in entry.description.lower():
            score += SCORE_DESCRIPTION
            matches.append("description")
        if any(needle in tag for tag in entry.tags):
            score += SCORE_TAG
            matches.append("tags")
        keywords = set(entry.keywords)
        keyword_hits = sum(1 for token in query_tokens if token in keywords)
        if keyword_hits:
            score += SCORE_KEYWORD * keyword_hits
            matches.append("keywords")

        return score, tuple(matches)

    def get_suggestions(self, partial: str, limit: int = 5) -> list[str]:
        """Module ids close to ``partial`` for a "did you mean" hint.

        Tries prefixes of ``partial`` from longest to two characters, then
        ids containing it, then fuzzy close matches. Returns an empty list
        when nothing is close.
        """
        if not isinstance(partial, str) or limit <= 0:
            return []
        needle = partial.strip().lower()
        if len(needle) < _MIN_SUGGESTION_PREFIX:
            return []

        ids = sorted(self._entries)
        found: list[str] = []
        for end in range(len(needle), _MIN_SUGGESTION_PREFIX - 1, -1):
            prefix = needle[:end]
            found = [i for i in ids if i.startswith(prefix)]
            if found:
                break

        for module_id in ids:
            if needle in module_id and module_id not in found:
                found.append(module_id)

        if len(found) < limit:
            for module_id in difflib.get_close_matches(needle, ids, n=limit, cutoff=0.6):
                if module_id not in found:
                    found.append(module_id)

        return found[:limit]

    def find_similar(self, module_id: str, limit: int = 5) -> list[SearchResult]:
        """Modules of the same type, ranked by shared tags and capabilities."""
        target = self._entries.get(module_id)
        if target is None:
            return []
        target_traits = set(target.tags) | set(target.provides)

        results: list[SearchResult] = []
        for entry in self._entries.values():
            if entry.id == module_id or entry.type != target.type:
                continue
            shared = target_traits & (set(entry.tags) | set(entry.provides))
            score = len(shared) + (1 if entry.category == target.category else 0)
            results.append(SearchResult(entry.id, score, tuple(sorted(shared)), self._modules.get(entry.id)))

        results.sort(key=lambda r: (-r.score, r.id))
        return results[:limit]

    def get_recommendations(
        self,
        selected: Iterable[str],
        limit: int = 5,
        single_select_types: Iterable[str | ModuleType] | None = None,
    ) -> list[SearchResult]:
        """Modules the selection declares compatible that do not conflict with it.

        Score is how many selected modules list the candidate. Candidates
        vetoed by (or vetoing) any selected module, and candidates whose
        single-select type is already taken, are left out.
        """
        single_select = normalize_single_select(single_select_types)
        chosen = [self._entries[s] for s in dict.fromkeys(selected) if s in self._entries]
        chosen_ids = {c.id for c in chosen}
        taken_types = {c.type for c in chosen if c.type in single_select}

        counts: dict[str, int] = {}
        for entry in chosen:
            for candidate_id in entry.compatible_with:
                if candidate_id in self._entries and candidate_id not in chosen_ids:
                    counts[candidate_id] = counts.get(candidate_id, 0) + 1

        results: list[SearchResult] = []
        for candidate_id, count in counts.items():
            candidate = self._entries[candidate_id]
            if candidate.type in taken_types:
                continue
            if any(candidate_id in c.incompatible_with or c.id in candidate.incompatible_with for c in chosen):
                continue
            results.append(SearchResult(candidate_id, count, ("compatibleWith",), self._modules.get(candidate_id)))

        results.sort(key=lambda r: (-r.score, r.id))
        return results[:limit]
