"""Search index for retrieved guideline sections.

Provides content records, synonym expansion, relevance-ranked search and
seed index loading.
"""

from .records import (
    ContentRecord,
    RankedResult,
    SectionLink,
    PLATFORMS,
    CATEGORIES,
    UNIVERSAL_PLATFORM
)
from .synonyms import SynonymTable
from .search_engine import RelevanceSearchEngine, InvalidQueryError, ScoringWeights, normalize_query
from .seed_index import load_seed_index, parse_seed_index

__all__ = [
    # Records
    'ContentRecord',
    'RankedResult',
    'SectionLink',
    'PLATFORMS',
    'CATEGORIES',
    'UNIVERSAL_PLATFORM',

    # Search
    'SynonymTable',
    'RelevanceSearchEngine',
    'InvalidQueryError',
    'ScoringWeights',
    'normalize_query',

    # Seed index
    'load_seed_index',
    'parse_seed_index'
]
