"""I/O utilities for datasets and reference tables."""

from .loader import (
    load_h5ad,
    get_candidate_group_columns,
    get_expression,
    get_embedding,
    resolve_embedding_key,
)
from .references import load_pseudogenes, load_transcript_reference, genes_to_transcripts

__all__ = [
    "load_h5ad",
    "get_candidate_group_columns",
    "get_expression",
    "get_embedding",
    "resolve_embedding_key",
    "load_pseudogenes",
    "load_transcript_reference",
    "genes_to_transcripts",
]
