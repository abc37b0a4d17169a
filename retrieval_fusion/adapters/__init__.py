# Candidate source adapters and collaborator implementations

from .base import (
    AdapterConnectionError,
    AdapterError,
    AdapterTimeoutError,
    CandidateSourceAdapter,
)
from .candidate_sources import (
    LEXICAL_SOURCE,
    VECTOR_SOURCE,
    LexicalCandidateAdapter,
    VectorCandidateAdapter,
)
from .collaborators import LexicalRetriever, QueryEmbedder, RecordStore, VectorRetriever
from .memory import (
    HashingEmbedder,
    InMemoryLexicalIndex,
    InMemoryRecordStore,
    InMemoryVectorIndex,
    build_in_memory_collaborators,
)
from .rest import (
    RestLexicalRetriever,
    RestQueryEmbedder,
    RestRecordStore,
    RestSessionPool,
    RestVectorRetriever,
)

__all__ = [
    "AdapterConnectionError",
    "AdapterError",
    "AdapterTimeoutError",
    "CandidateSourceAdapter",
    "HashingEmbedder",
    "InMemoryLexicalIndex",
    "InMemoryRecordStore",
    "InMemoryVectorIndex",
    "LEXICAL_SOURCE",
    "LexicalCandidateAdapter",
    "LexicalRetriever",
    "QueryEmbedder",
    "RecordStore",
    "RestLexicalRetriever",
    "RestQueryEmbedder",
    "RestRecordStore",
    "RestSessionPool",
    "RestVectorRetriever",
    "VECTOR_SOURCE",
    "VectorCandidateAdapter",
    "VectorRetriever",
    "build_in_memory_collaborators",
]
