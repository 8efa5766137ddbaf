"""
Pydantic models for classification results and model information.
"""
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, model_validator

from .exceptions import ClassifierError, ErrorKind


class Label(str, Enum):
    BENIGN = "Benign"
    MALIGNANT = "Malignant"


class ClassificationResult(BaseModel):
    """Decision for a single image."""

    model_config = ConfigDict(frozen=True)

    label: Label = Field(description="Predicted class.")
    confidence: float = Field(description="Score backing the predicted label; in [0, 1] whenever the model's scores are.")

    @property
    def confidence_percent(self) -> str:
        return f"{self.confidence * 100:.1f}%"


class ClassificationOutcome(BaseModel):
    """
    Explicit success/error value for one classification request.
    Exactly one of `result` and `error_kind` is set.
    """

    model_config = ConfigDict(frozen=True)

    result: ClassificationResult | None = None
    error_kind: ErrorKind | None = None
    error_message: str | None = None

    @model_validator(mode="after")
    def check_exclusive(self):
        if (self.result is None) == (self.error_kind is None):
            raise ValueError("Exactly one of 'result' and 'error_kind' must be set.")
        return self

    @property
    def ok(self) -> bool:
        return self.result is not None

    @classmethod
    def success(cls, result: ClassificationResult) -> "ClassificationOutcome":
        return cls(result=result)

    @classmethod
    def failure(cls, error: ClassifierError) -> "ClassificationOutcome":
        return cls(error_kind=error.kind, error_message=str(error))


class ModelInformation(BaseModel):
    """
    Describes the loaded model session.
    """

    model_config = ConfigDict(protected_namespaces=())

    asset_name: str = Field(description="Logical name of the model asset.")
    model_path: str = Field(description="Resolved path the model was loaded from.")
    model_description: str | None = Field(None, description="Brief model description.")
    backend: str = Field(description="Inference engine backend serving the model.")
    num_threads: int = Field(description="Compute threads configured on the engine.")
    input_shape: list[int] = Field(description="Engine input shape [1, S, S, 3].")
    output_size: int = Field(description="Number of raw scores K produced by the model (1 or 2).")
    labels: list[Label] = Field(description="Labels the classifier can produce.")
    image_interpolation: str = Field(description="Interpolation used when resizing inputs.")
    handler_version: str = Field(description="Version of the SkinLesionClassifier.")
