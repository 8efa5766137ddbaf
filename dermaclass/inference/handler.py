"""
Skin lesion classifier: owns the inference session and turns images into decisions.
"""
import logging
import threading
import time
from dataclasses import dataclass
from enum import Enum
from pathlib import Path

import numpy as np
from PIL import Image

from dermaclass.inference.api_schemas import (
    ClassificationOutcome,
    ClassificationResult,
    Label,
    ModelInformation,
)
from dermaclass.inference.config import ClassifierConfig, load_classifier_config
from dermaclass.inference.exceptions import (
    ClassifierError,
    ModelLoadError,
    NotInitializedError,
)
from dermaclass.inference.model_utils import Session, load_session, run_session
from dermaclass.inference.postprocessing import decide
from dermaclass.inference.preprocessing import preprocess_image
from dermaclass.utils.logging import create_logger

logger = logging.getLogger("dermaclass.inference")


class ClassifierState(str, Enum):
    UNINITIALIZED = "uninitialized"
    READY = "ready"
    CLOSED = "closed"


@dataclass(frozen=True)
class _Uninitialized:
    load_failed: bool = False

    state = ClassifierState.UNINITIALIZED


@dataclass(frozen=True)
class _Ready:
    session: Session

    state = ClassifierState.READY


@dataclass(frozen=True)
class _Closed:
    state = ClassifierState.CLOSED


class SkinLesionClassifier:
    """
    Classifies a skin lesion image as Benign or Malignant.

    Lifecycle: UNINITIALIZED -> READY -> CLOSED. The inference session only
    exists inside the READY state; once closed an instance cannot be reused
    and a new one must be constructed.

    A single instance is not safe for concurrent classify() calls. Serialize
    requests (see ClassificationWorker) or use one instance per worker.
    """

    def __init__(self, config: ClassifierConfig | None = None):
        self.config = config or ClassifierConfig()
        self._status: _Uninitialized | _Ready | _Closed = _Uninitialized()
        self._transition_lock = threading.Lock()

    @classmethod
    def from_config(cls, config: ClassifierConfig | None = None) -> "SkinLesionClassifier":
        classifier = cls(config)
        classifier.load()
        return classifier

    @classmethod
    def load_from_artifacts(
        cls,
        config_file_path: str | Path,
        assets_dir: str | Path | None = None,
    ) -> "SkinLesionClassifier":
        config_path = Path(config_file_path)
        cfg = load_classifier_config(config_path)
        create_logger(log_level=cfg.inference_options.log_level)
        logger.info(f"Loaded classifier configuration from: {config_path}")

        if assets_dir is not None:
            cfg.model.assets_dir = str(assets_dir)
        elif cfg.model.assets_dir and not Path(cfg.model.assets_dir).is_absolute():
            # Relative asset directories are resolved against the config file.
            cfg.model.assets_dir = str(config_path.parent / cfg.model.assets_dir)

        return cls.from_config(cfg)

    @property
    def state(self) -> ClassifierState:
        return self._status.state

    def load(self) -> "SkinLesionClassifier":
        """Loads the model and enters READY. Raises ModelLoadError on failure."""
        with self._transition_lock:
            status = self._status
            if isinstance(status, _Ready):
                logger.debug("Classifier already loaded.")
                return self
            if isinstance(status, _Closed):
                raise NotInitializedError("Classifier has been closed; construct a new instance")
            if status.load_failed:
                raise ModelLoadError("A previous model load failed; this classifier can never become ready")

            try:
                session = load_session(self.config.model, self.config.input_preprocessing.image_size)
            except ModelLoadError:
                self._status = _Uninitialized(load_failed=True)
                raise
            except Exception as e:
                self._status = _Uninitialized(load_failed=True)
                logger.error(f"Unexpected error while loading model: {e}")
                raise ModelLoadError(f"Failed to load model: {e}") from e

            self._status = _Ready(session)
        logger.info(f"Classifier ready ({session.backend}, {session.output_size} output score(s)).")
        return self

    def _require_session(self) -> Session:
        status = self._status
        if not isinstance(status, _Ready):
            raise NotInitializedError(f"Classifier is {status.state.value}; classify() requires a loaded model")
        return status.session

    def classify(self, image: bytes | Image.Image | np.ndarray) -> ClassificationResult:
        """
        Classifies a single image.

        Raises:
            NotInitializedError: the classifier is not READY.
            PreprocessingError: the image could not be converted to a tensor.
            InferenceError: the engine failed or produced unusable scores.
        """
        session = self._require_session()
        start_time = time.monotonic()

        tensor = preprocess_image(image, self.config.input_preprocessing)
        scores = run_session(session, tensor)
        result = decide(scores)

        logger.info(
            f"Classified image as {result.label.value} ({result.confidence_percent}) "
            f"in {time.monotonic() - start_time:.4f}s."
        )
        return result

    def try_classify(self, image: bytes | Image.Image | np.ndarray) -> ClassificationOutcome:
        """Like classify(), but reports pipeline failures as an outcome instead of raising."""
        try:
            return ClassificationOutcome.success(self.classify(image))
        except ClassifierError as e:
            return ClassificationOutcome.failure(e)

    def info(self) -> ModelInformation:
        session = self._require_session()
        return ModelInformation(
            asset_name=self.config.model.asset_name,
            model_path=str(session.model_path),
            model_description=self.config.model_description,
            backend=session.backend,
            num_threads=session.num_threads,
            input_shape=list(session.input_shape),
            output_size=session.output_size,
            labels=list(Label),
            image_interpolation=self.config.input_preprocessing.image_interpolation,
            handler_version=self.config.inference_options.handler_version,
        )

    def close(self) -> None:
        """Releases the session and enters CLOSED. Repeated calls are no-ops."""
        with self._transition_lock:
            status = self._status
            if isinstance(status, _Closed):
                return
            self._status = _Closed()
        if isinstance(status, _Ready):
            status.session.close()
            logger.info("Classifier closed and model session released.")

    def __enter__(self) -> "SkinLesionClassifier":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
