import math
import string
from typing import List, Mapping, Sequence, Tuple

import numpy as np

from .common.models import DenseOutput, ModelOutput, SparseOutput
from .errors import EmptyScoreSetError, LabelOutOfRangeError, UnsupportedOutputShapeError

DEFAULT_LABELS: Tuple[str, ...] = tuple(string.ascii_uppercase)


def reduce_dense(scores: Sequence[float]) -> Tuple[int, float]:
    """
    Arg-max over an ordered score vector. The first maximum wins.
    NaN never compares greater, so NaN entries are skipped; all-NaN gives (0, -inf).
    """
    flat = np.asarray(scores, dtype=np.float64).ravel()
    if flat.size == 0:
        raise EmptyScoreSetError("dense output has no scores")

    max_index = 0
    max_value = -math.inf
    for i in range(flat.size):
        v = float(flat[i])
        if v > max_value:
            max_value = v
            max_index = i

    return max_index, max_value


def dense_label(index: int, labels: Sequence[str] = DEFAULT_LABELS) -> str:
    if index < 0 or index >= len(labels):
        raise LabelOutOfRangeError(index, len(labels))
    return labels[index]


def reduce_sparse(scores: Mapping[str, float]) -> Tuple[str, float]:
    """
    Arg-max over a label -> score mapping.
    Ties go to the lexicographically smallest label, so the result does not
    depend on the mapping's iteration order.
    """
    if not scores:
        raise EmptyScoreSetError("sparse output has no scores")

    ordered = sorted(scores, key=str)
    best_label = ordered[0]
    best_value = -math.inf
    for label in ordered:
        v = float(scores[label])
        if v > best_value:
            best_label = label
            best_value = v

    return str(best_label), best_value


def reduce_output(output: ModelOutput, labels: Sequence[str] = DEFAULT_LABELS) -> Tuple[str, float]:
    if isinstance(output, DenseOutput):
        index, value = reduce_dense(output.scores)
        return dense_label(index, labels), value
    if isinstance(output, SparseOutput):
        return reduce_sparse(output.scores)
    raise UnsupportedOutputShapeError(f"cannot reduce {type(output).__name__}")


def top_k(output: ModelOutput, labels: Sequence[str] = DEFAULT_LABELS, k: int = 3) -> List[Tuple[str, float]]:
    """Best k (label, score) pairs, for debug logging."""
    if isinstance(output, DenseOutput):
        flat = np.asarray(output.scores, dtype=np.float64).ravel()
        # stable sort keeps the lowest index first among equal scores
        order = np.argsort(-flat, kind="stable")[:k]
        return [
            (labels[i] if i < len(labels) else f"#{i}", float(flat[i]))
            for i in order
        ]
    if isinstance(output, SparseOutput):
        items = sorted(output.scores.items(), key=lambda kv: (-float(kv[1]), str(kv[0])))
        return [(str(label), float(v)) for label, v in items[:k]]
    raise UnsupportedOutputShapeError(f"cannot rank {type(output).__name__}")
