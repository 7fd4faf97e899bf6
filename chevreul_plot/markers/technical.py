"""Predicates flagging technical features (pseudogenes, mitochondrial and ribosomal genes)."""

import re
from typing import Callable, Iterable, List, Optional

from ..errors import InvalidPanelRequest

FilterPredicate = Callable[[str], bool]

# Mitochondrial (MT-) and ribosomal protein (RPS/RPL) gene symbols
MITO_RIBO_PATTERN = re.compile(r"^(MT-|RPS|RPL)", re.IGNORECASE)

TECHNICAL_FILTERS = ("none", "pseudo", "mito_ribo", "all")


def is_mito_ribo(feature: str) -> bool:
    """Return True for mitochondrial or ribosomal protein gene symbols."""
    return MITO_RIBO_PATTERN.match(feature) is not None


def pseudogene_predicate(pseudogenes: Iterable[str]) -> FilterPredicate:
    """
    Build a predicate matching members of a pseudogene set.

    Parameters
    ----------
    pseudogenes : iterable of str
        Feature identifiers known to be pseudogenes or non-coding.

    Returns
    -------
    callable
        Function returning True when a feature is in the set.
    """
    pseudogene_set = frozenset(pseudogenes)

    def _is_pseudogene(feature: str) -> bool:
        return feature in pseudogene_set

    return _is_pseudogene


def combine_predicates(predicates: List[FilterPredicate]) -> FilterPredicate:
    """Combine predicates with logical OR."""

    def _any(feature: str) -> bool:
        return any(predicate(feature) for predicate in predicates)

    return _any


def get_technical_filter(
    hide_technical: Optional[str],
    pseudogenes: Optional[Iterable[str]] = None,
) -> Optional[FilterPredicate]:
    """
    Resolve a technical filter name into a predicate.

    Parameters
    ----------
    hide_technical : {None, 'none', 'pseudo', 'mito_ribo', 'all'}
        Which class of technical features to exclude.
    pseudogenes : iterable of str, optional
        Pseudogene identifiers. Required for 'pseudo' and 'all'.

    Returns
    -------
    callable or None
        Predicate returning True for features to exclude, or None when no
        filtering is requested.
    """
    if hide_technical is None or hide_technical == "none":
        return None

    if hide_technical not in TECHNICAL_FILTERS:
        raise InvalidPanelRequest(
            f"Unknown technical filter '{hide_technical}' "
            f"(expected one of: {', '.join(TECHNICAL_FILTERS)})"
        )

    predicates = []
    if hide_technical in ("pseudo", "all"):
        if pseudogenes is None:
            raise InvalidPanelRequest(
                f"Technical filter '{hide_technical}' requires a pseudogene set"
            )
        predicates.append(pseudogene_predicate(pseudogenes))
    if hide_technical in ("mito_ribo", "all"):
        predicates.append(is_mito_ribo)

    return combine_predicates(predicates)
