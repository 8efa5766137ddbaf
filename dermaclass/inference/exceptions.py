"""
Error taxonomy for the classification pipeline.

Every failure raised by the pipeline derives from ClassifierError and carries
an ErrorKind, so callers can either catch exceptions or turn them into an
explicit ClassificationOutcome (see api_schemas).
"""
from enum import Enum


class ErrorKind(str, Enum):
    MODEL_LOAD = "model_load"
    NOT_INITIALIZED = "not_initialized"
    PREPROCESSING = "preprocessing"
    INFERENCE = "inference"


class ClassifierError(Exception):
    """Base class for all classification pipeline failures."""

    kind: ErrorKind


class ModelLoadError(ClassifierError):
    """Model asset missing, unreadable, rejected by the engine, or of an unsupported shape."""

    kind = ErrorKind.MODEL_LOAD


class NotInitializedError(ClassifierError, RuntimeError):
    """classify() called on a classifier that is not in the READY state."""

    kind = ErrorKind.NOT_INITIALIZED


class PreprocessingError(ClassifierError, ValueError):
    """The input image could not be turned into an input tensor."""

    kind = ErrorKind.PREPROCESSING


class InferenceError(ClassifierError, RuntimeError):
    """The engine failed for a single invocation, or produced unusable scores."""

    kind = ErrorKind.INFERENCE
