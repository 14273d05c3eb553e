"""Metadata filter translation: plain dict → Qdrant Filter."""
from __future__ import annotations

from typing import Any, Mapping, Optional

from qdrant_client.models import FieldCondition, Filter, MatchAny, MatchValue


def build_filter(conditions: Optional[Mapping[str, Any]]) -> Optional[Filter]:
    """
    Scalars become equality matches, lists/tuples/sets become "any of" matches.
    An empty mapping means no filter.
    """
    if not conditions:
        return None
    must = []
    for key, value in conditions.items():
        if isinstance(value, (list, tuple, set, frozenset)):
            must.append(FieldCondition(key=key, match=MatchAny(any=list(value))))
        else:
            must.append(FieldCondition(key=key, match=MatchValue(value=value)))
    return Filter(must=must)
