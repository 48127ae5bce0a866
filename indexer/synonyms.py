"""Synonym table and one-level query expansion."""

import logging
from pathlib import Path
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Union

import yaml

logger = logging.getLogger(__name__)


class SynonymTable:
    """Many-to-many mapping from a term or phrase to related terms.

    Expansion looks up the full query, every term and every pair of adjacent
    terms, and stops there: synonyms of synonyms are never expanded.
    """

    def __init__(self, mapping: Optional[Mapping[str, Iterable[str]]] = None):
        self._table: Dict[str, List[str]] = {}
        for key, synonyms in (mapping or {}).items():
            for synonym in synonyms:
                self.add(key, synonym)

    def add(self, term: str, synonym: str) -> None:
        """Map ``term`` to ``synonym`` (one direction)."""
        term = term.strip().lower()
        synonym = synonym.strip().lower()
        if not term or not synonym or term == synonym:
            return
        related = self._table.setdefault(term, [])
        if synonym not in related:
            related.append(synonym)

    def add_group(self, members: Sequence[str]) -> None:
        """Make every member a synonym of every other member."""
        for member in members:
            for other in members:
                self.add(member, other)

    def lookup(self, term: str) -> List[str]:
        return list(self._table.get(term.strip().lower(), ()))

    def __contains__(self, term: str) -> bool:
        return term.strip().lower() in self._table

    def __len__(self) -> int:
        return len(self._table)

    def expand(self, query: str, terms: Sequence[str]) -> List[str]:
        """Return the normalized query followed by its synonyms, without duplicates.

        Args:
            query: Normalized (lowercase, trimmed) query
            terms: Normalized query terms

        Returns:
            ``[query, synonym, ...]``; a single element means nothing expanded
        """
        candidates = [query] + list(terms)
        candidates += [f"{a} {b}" for a, b in zip(terms, terms[1:])]

        expanded = [query]
        seen = {query, *terms}
        for candidate in candidates:
            for synonym in self._table.get(candidate, ()):
                if synonym not in seen:
                    seen.add(synonym)
                    expanded.append(synonym)
        return expanded

    @classmethod
    def from_dict(cls, data: Mapping) -> 'SynonymTable':
        """Build from ``{'groups': [[...]], 'mappings': {term: [...]}}``."""
        table = cls()
        for group in data.get('groups') or []:
            table.add_group([str(m) for m in group])
        for term, synonyms in (data.get('mappings') or {}).items():
            for synonym in synonyms or []:
                table.add(str(term), str(synonym))
        return table

    @classmethod
    def from_yaml(cls, path: Union[str, Path]) -> 'SynonymTable':
        """Load a synonym table from a YAML file.

        A missing or unreadable file yields an empty table.
        """
        path = Path(path)
        if not path.exists():
            logger.warning(f"Synonym table not found: {path}")
            return cls()

        try:
            with open(path, 'r', encoding='utf-8') as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            logger.error(f"Failed to parse synonym table {path}: {e}")
            return cls()

        if not isinstance(data, dict):
            logger.error(f"Synonym table {path} must be a mapping")
            return cls()

        table = cls.from_dict(data)
        logger.info(f"Loaded {len(table)} synonym entries from {path}")
        return table
