"""In-memory collaborators for development and testing.

These stand in for the external lexical engine, vector engine, embedding
provider and record storage. They are deterministic for a fixed data set.
"""

import hashlib
import logging
import math
import re
from collections import Counter, defaultdict
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

import numpy as np

from .collaborators import LexicalRetriever, QueryEmbedder, RecordStore, ScoredId, VectorRetriever
from ..models.core import Record, RecordId, id_sort_key


logger = logging.getLogger(__name__)


def tokenize(text: str) -> List[str]:
    """Lowercase word tokens."""
    if not text:
        return []
    return re.findall(r'\b\w+\b', text.lower())


def record_text(record: Record) -> str:
    """Searchable text of a record."""
    return " ".join([record.name, record.brand, record.description, " ".join(record.tags)])


class InMemoryRecordStore(RecordStore):
    """Dictionary-backed record storage."""

    def __init__(self, records: Optional[Iterable[Record]] = None):
        self._records: Dict[RecordId, Record] = {}
        for record in records or []:
            self.upsert(record)

    def upsert(self, record: Record) -> None:
        self._records[record.id] = record

    def delete(self, record_id: RecordId) -> bool:
        return self._records.pop(record_id, None) is not None

    def all_records(self) -> List[Record]:
        return [self._records[rid] for rid in sorted(self._records, key=id_sort_key)]

    def fetch_by_ids(self, ids: Iterable[RecordId]) -> Dict[RecordId, Record]:
        return {rid: self._records[rid] for rid in ids if rid in self._records}

    def __len__(self) -> int:
        return len(self._records)


class InMemoryLexicalIndex(LexicalRetriever):
    """BM25 (Best Matching 25) index over record text."""

    def __init__(self, records: Iterable[Record] = (), k1: float = 1.2, b: float = 0.75):
        """Initialize and build the index.

        Args:
            records: Records to index
            k1: Controls term frequency saturation
            b: Controls length normalization
        """
        self.k1 = k1
        self.b = b
        self.doc_ids: List[RecordId] = []
        self.doc_lengths: List[int] = []
        self.doc_term_counts: List[Counter] = []
        self.doc_frequencies: Dict[str, int] = defaultdict(int)
        self.term_doc_mapping: Dict[str, List[int]] = defaultdict(list)
        self.avg_doc_length: float = 0.0
        self.add_records(records)

    def add_records(self, records: Iterable[Record]) -> None:
        for record in records:
            doc_idx = len(self.doc_ids)
            term_counts = Counter(tokenize(record_text(record)))

            self.doc_ids.append(record.id)
            self.doc_term_counts.append(term_counts)
            self.doc_lengths.append(sum(term_counts.values()))

            for term in term_counts:
                self.term_doc_mapping[term].append(doc_idx)
                self.doc_frequencies[term] += 1

        self.avg_doc_length = sum(self.doc_lengths) / len(self.doc_lengths) if self.doc_lengths else 0.0
        logger.debug(f"BM25 index holds {len(self.doc_ids)} records, "
                     f"avg length: {self.avg_doc_length:.1f} tokens")

    def search(self, query_text: str, limit: int) -> List[ScoredId]:
        query_terms = tokenize(query_text)
        if not query_terms or not self.doc_ids:
            return []

        doc_scores: Dict[int, float] = defaultdict(float)
        n_docs = len(self.doc_ids)

        for term in set(query_terms):
            df = self.doc_frequencies.get(term)
            if not df:
                continue

            idf = math.log(1 + (n_docs - df + 0.5) / (df + 0.5))

            for doc_idx in self.term_doc_mapping[term]:
                tf = self.doc_term_counts[doc_idx][term]
                length_ratio = self.doc_lengths[doc_idx] / self.avg_doc_length if self.avg_doc_length else 1.0
                numerator = tf * (self.k1 + 1)
                denominator = tf + self.k1 * (1 - self.b + self.b * length_ratio)
                doc_scores[doc_idx] += idf * (numerator / denominator)

        ranked = sorted(
            doc_scores.items(),
            key=lambda item: (-item[1], id_sort_key(self.doc_ids[item[0]]))
        )
        return [(self.doc_ids[doc_idx], score) for doc_idx, score in ranked[:limit]]


class InMemoryVectorIndex(VectorRetriever):
    """Brute-force cosine similarity index. Similarities are clipped to [0, 1]."""

    def __init__(self, dimension: int):
        self.dimension = dimension
        self.ids: List[RecordId] = []
        self._vectors: List[np.ndarray] = []
        self._matrix: Optional[np.ndarray] = None

    def add(self, record_id: RecordId, embedding: Sequence[float]) -> None:
        vector = np.asarray(embedding, dtype=np.float64)
        if vector.shape != (self.dimension,):
            raise ValueError(f"Expected embedding of dimension {self.dimension}, got {vector.shape}")

        norm = np.linalg.norm(vector)
        self.ids.append(record_id)
        self._vectors.append(vector / norm if norm > 0 else vector)
        self._matrix = None

    def search(self, query_embedding: Sequence[float], limit: int) -> List[ScoredId]:
        if not self.ids:
            return []

        query = np.asarray(query_embedding, dtype=np.float64)
        norm = np.linalg.norm(query)
        if norm == 0:
            return []

        if self._matrix is None:
            self._matrix = np.vstack(self._vectors)

        similarities = np.clip(self._matrix @ (query / norm), 0.0, 1.0)
        ranked = sorted(
            range(len(self.ids)),
            key=lambda idx: (-similarities[idx], id_sort_key(self.ids[idx]))
        )
        return [(self.ids[idx], float(similarities[idx])) for idx in ranked[:limit]]


class HashingEmbedder(QueryEmbedder):
    """Deterministic bag-of-words embedding using hashed token buckets."""

    def __init__(self, dimension: int = 64):
        self.dimension = dimension

    def embed(self, query_text: str) -> List[float]:
        vector = np.zeros(self.dimension, dtype=np.float64)
        for token in tokenize(query_text):
            digest = hashlib.md5(token.encode("utf-8")).digest()
            bucket = int.from_bytes(digest[:4], "little") % self.dimension
            vector[bucket] += 1.0

        norm = np.linalg.norm(vector)
        if norm > 0:
            vector /= norm
        return vector.tolist()


def build_in_memory_collaborators(records: Iterable[Record], dimension: int = 64
                                  ) -> Tuple[InMemoryRecordStore, InMemoryLexicalIndex,
                                             InMemoryVectorIndex, HashingEmbedder]:
    """Index ``records`` into a full set of in-memory collaborators."""
    records = list(records)
    embedder = HashingEmbedder(dimension)
    vector_index = InMemoryVectorIndex(dimension)
    for record in records:
        vector_index.add(record.id, embedder.embed(record_text(record)))

    return InMemoryRecordStore(records), InMemoryLexicalIndex(records), vector_index, embedder
