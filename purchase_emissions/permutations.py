from __future__ import annotations

from typing import List, Optional, Sequence

from .pipeline_types import Candidate


def search_category_permutations(
    search_terms: Sequence[str],
    categories: Sequence[Optional[str]],
) -> List[Candidate]:
    """
    Every (search term, category) pairing, search terms in the outer loop.

    An empty category list behaves like a single absent category, so each
    search term still produces one candidate.
    """
    cats: Sequence[Optional[str]] = categories if categories else [None]
    return [
        Candidate(search_term=term, category=category)
        for term in search_terms
        for category in cats
    ]
