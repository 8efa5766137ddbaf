"""
Configuration for the skin lesion classifier.
Uses Pydantic for typed configuration.
"""
from pathlib import Path

import yaml
from pydantic import BaseModel, ConfigDict, Field, field_validator

# Directory holding models shipped with the package.
BUNDLED_ASSETS_DIR = Path(__file__).resolve().parent.parent / "assets"

SUPPORTED_BACKENDS = ("auto", "tflite", "torchscript")
SUPPORTED_INTERPOLATIONS = ("bilinear", "bicubic", "nearest", "box")


class ModelConfig(BaseModel):
    asset_name: str = Field(default="skin_lesion_model.tflite", description="Logical name of the bundled model file.")
    assets_dir: str | None = Field(None, description="Directory holding the model asset. Defaults to the package's bundled assets directory.")
    # 'auto' picks the engine from the asset's file suffix.
    backend: str = Field(default="auto", description="Inference engine backend ('auto', 'tflite' or 'torchscript').")
    num_threads: int = Field(4, gt=0, description="Number of compute threads handed to the inference engine.")

    @field_validator("backend")
    @classmethod
    def check_backend(cls, v: str) -> str:
        v = v.lower()
        if v not in SUPPORTED_BACKENDS:
            raise ValueError(f"backend must be one of {SUPPORTED_BACKENDS}, got '{v}'")
        return v


class InputConfig(BaseModel):
    image_size: int = Field(224, gt=0, description="Side length S of the square model input [S, S, 3].")
    image_interpolation: str = Field(default="bilinear", description="Interpolation method for resizing (e.g., 'bilinear', 'bicubic', 'box').")

    @field_validator("image_interpolation")
    @classmethod
    def check_interpolation(cls, v: str) -> str:
        v = v.lower()
        if v not in SUPPORTED_INTERPOLATIONS:
            raise ValueError(f"image_interpolation must be one of {SUPPORTED_INTERPOLATIONS}, got '{v}'")
        return v


class InferenceOptionsConfig(BaseModel):
    handler_version: str = Field("0.1.0", description="Version of the SkinLesionClassifier itself.")
    log_level: str = Field("INFO", description="Console log level applied by SkinLesionClassifier.load_from_artifacts.")


class ClassifierConfig(BaseModel):
    """Root configuration model for the skin lesion classifier."""
    model_config = ConfigDict(protected_namespaces=())

    model: ModelConfig = Field(default_factory=ModelConfig)
    input_preprocessing: InputConfig = Field(default_factory=InputConfig)
    inference_options: InferenceOptionsConfig = Field(default_factory=InferenceOptionsConfig)
    model_description: str | None = Field(None, description="A brief description of the bundled model (e.g., 'MobileNetV2 fine-tuned on ISIC 2019').")


def load_classifier_config(config_path: Path) -> ClassifierConfig:
    """Loads classifier configuration from a YAML file."""
    if not config_path.is_file():
        raise FileNotFoundError(f"Classifier configuration file not found: {config_path}")

    with open(config_path) as f:
        raw_config = yaml.safe_load(f) or {}

    return ClassifierConfig(**raw_config)


def resolve_model_path(model_cfg: ModelConfig) -> Path:
    """Maps the logical asset name to a file path."""
    asset = Path(model_cfg.asset_name)
    if asset.is_absolute():
        return asset
    base_dir = Path(model_cfg.assets_dir) if model_cfg.assets_dir else BUNDLED_ASSETS_DIR
    return base_dir / asset
