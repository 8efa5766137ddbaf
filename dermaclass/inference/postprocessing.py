"""
Decision logic turning raw model scores into a label and confidence.
"""
import logging

import numpy as np

from .api_schemas import ClassificationResult, Label
from .exceptions import InferenceError

logger = logging.getLogger("dermaclass.inference")

# Scores strictly above this value indicate malignancy; exactly 0.5 is Benign.
MALIGNANT_THRESHOLD = 0.5

SUPPORTED_OUTPUT_SIZES = (1, 2)


def decide(scores) -> ClassificationResult:
    """
    Maps a raw output vector to a ClassificationResult.

    Two output shapes are supported:
    - K == 1 (sigmoid-style): the single score p is the malignancy score.
      p > 0.5 -> (Malignant, p), otherwise (Benign, 1 - p).
    - K == 2 (softmax-style, class 0 = Benign, class 1 = Malignant):
      s1 > 0.5 -> (Malignant, s1), otherwise (Benign, s0).

    Two-score outputs are consumed as-is; they are not renormalized.

    Args:
        scores: Raw model output of shape [K] or [1, K].

    Raises:
        InferenceError: if K is not 1 or 2, or a score is not finite.
    """
    values = np.asarray(scores, dtype=np.float64).reshape(-1)

    if values.size not in SUPPORTED_OUTPUT_SIZES:
        logger.error(f"Unsupported model output size {values.size}; expected one of {SUPPORTED_OUTPUT_SIZES}.")
        raise InferenceError(f"Unsupported model output size: {values.size}")

    if not np.all(np.isfinite(values)):
        logger.error(f"Model produced non-finite scores: {values.tolist()}")
        raise InferenceError(f"Model produced non-finite scores: {values.tolist()}")

    if values.size == 1:
        p = float(values[0])
        if p > MALIGNANT_THRESHOLD:
            return ClassificationResult(label=Label.MALIGNANT, confidence=p)
        return ClassificationResult(label=Label.BENIGN, confidence=1.0 - p)

    benign_score, malignant_score = float(values[0]), float(values[1])
    if malignant_score > MALIGNANT_THRESHOLD:
        return ClassificationResult(label=Label.MALIGNANT, confidence=malignant_score)
    return ClassificationResult(label=Label.BENIGN, confidence=benign_score)
