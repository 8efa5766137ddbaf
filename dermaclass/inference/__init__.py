"""
Dermaclass Inference Module.

Provides the SkinLesionClassifier for classifying skin lesion photographs as
Benign or Malignant, along with utilities for configuration, model loading
and data processing.
"""

from .api_schemas import ClassificationOutcome, ClassificationResult, Label, ModelInformation
from .config import (
    ClassifierConfig,
    InferenceOptionsConfig,
    InputConfig,
    ModelConfig,
    load_classifier_config,
)
from .exceptions import (
    ClassifierError,
    ErrorKind,
    InferenceError,
    ModelLoadError,
    NotInitializedError,
    PreprocessingError,
)
from .handler import ClassifierState, SkinLesionClassifier
from .model_utils import Session, load_session, run_session
from .postprocessing import decide
from .preprocessing import image_to_tensor, preprocess_image, resize_image
from .worker import ClassificationWorker

__all__ = [
    "SkinLesionClassifier",
    "ClassifierState",
    "ClassificationWorker",
    "ClassifierConfig",
    "ModelConfig",
    "InputConfig",
    "InferenceOptionsConfig",
    "load_classifier_config",
    "Session",
    "load_session",
    "run_session",
    "preprocess_image",
    "resize_image",
    "image_to_tensor",
    "decide",
    "ClassificationResult",
    "ClassificationOutcome",
    "Label",
    "ModelInformation",
    "ClassifierError",
    "ErrorKind",
    "ModelLoadError",
    "NotInitializedError",
    "PreprocessingError",
    "InferenceError",
]
