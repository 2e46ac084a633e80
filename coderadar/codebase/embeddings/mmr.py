# Copyright 2025 Vijaykumar Singh <singhvjd@gmail.com>
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""Maximal Marginal Relevance reranking.

Greedily reorders similarity hits so that each next pick maximizes

    lambda * sim(candidate, query) - (1 - lambda) * max(sim(candidate, s) for s in selected)

where ``sim`` is cosine similarity. ``lambda_=1.0`` keeps the relevance
order; ``lambda_=0.0`` picks, after the first result, whatever is least
similar to what has already been chosen.
"""

from typing import List, Sequence

import numpy as np

from coderadar.codebase.embeddings.models import SearchResult


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """Cosine similarity of two vectors; 0.0 when either has zero norm."""
    vec_a = np.asarray(a, dtype=np.float64)
    vec_b = np.asarray(b, dtype=np.float64)
    norm = np.linalg.norm(vec_a) * np.linalg.norm(vec_b)
    if norm == 0:
        return 0.0
    return float(np.dot(vec_a, vec_b) / norm)


def rerank_with_mmr(
    results: Sequence[SearchResult],
    query_vector: Sequence[float],
    lambda_: float = 0.5,
) -> List[SearchResult]:
    """Rerank search results for diversity.

    Args:
        results: Hits in relevance order, each carrying its ``vector``
        query_vector: The query embedding
        lambda_: Relevance/diversity trade-off in [0, 1]

    Returns:
        The same results, reordered. Inputs with fewer than two results are
        returned unchanged.

    Raises:
        ValueError: ``lambda_`` outside [0, 1] or a result without a vector
    """
    if not 0.0 <= lambda_ <= 1.0:
        raise ValueError(f"lambda_ must be in [0, 1], got {lambda_}")
    if len(results) < 2:
        return list(results)
    if any(r.vector is None for r in results):
        raise ValueError("MMR needs result vectors; search with vectors included")

    vectors = np.asarray([r.vector for r in results], dtype=np.float64)
    norms = np.linalg.norm(vectors, axis=1)
    norms[norms == 0] = 1.0
    unit = vectors / norms[:, None]

    query = np.asarray(query_vector, dtype=np.float64)
    query_norm = np.linalg.norm(query)
    relevance = unit @ (query / query_norm) if query_norm else np.zeros(len(results))
    pairwise = unit @ unit.T

    pool = list(range(len(results)))
    selected: List[int] = []
    while pool:
        best_idx = pool[0]
        best_score = -np.inf
        for idx in pool:
            penalty = max(pairwise[idx, s] for s in selected) if selected else 0.0
            score = lambda_ * relevance[idx] - (1.0 - lambda_) * penalty
            # Strict comparison: ties keep the original relevance order
            if score > best_score:
                best_score = score
                best_idx = idx
        selected.append(best_idx)
        pool.remove(best_idx)

    return [results[i] for i in selected]
