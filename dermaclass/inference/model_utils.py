"""
Utilities for loading the bundled model into an inference session and invoking it.

Two engine backends are supported:
- TensorFlow Lite interpreters for `.tflite` assets (the shipped model format)
- TorchScript modules for `.pt` / `.pth` / `.torchscript` assets

Both are driven through the same tensor-in/tensor-out contract: a float32
input of shape [1, S, S, 3] and a raw output of shape [1, K] with K in {1, 2}.
"""
import logging
from dataclasses import dataclass, field
from pathlib import Path

import numpy as np
import torch

from .config import ModelConfig, resolve_model_path
from .exceptions import InferenceError, ModelLoadError, NotInitializedError
from .postprocessing import SUPPORTED_OUTPUT_SIZES

logger = logging.getLogger("dermaclass.inference")

BACKEND_BY_SUFFIX = {
    ".tflite": "tflite",
    ".pt": "torchscript",
    ".pth": "torchscript",
    ".torchscript": "torchscript",
}


def _flatten_output(raw) -> np.ndarray:
    """Accepts [1, K] or [K] engine output and returns a 1-D float array."""
    scores = np.asarray(raw, dtype=np.float32)
    if scores.ndim == 2 and scores.shape[0] == 1:
        scores = scores[0]
    if scores.ndim != 1:
        raise ValueError(f"Expected output of shape [1, K] or [K], got {list(scores.shape)}")
    return scores


class InferenceEngine:
    """Minimal interface shared by the engine backends."""

    backend_name = "base"

    def run(self, batch: np.ndarray) -> np.ndarray:
        raise NotImplementedError

    def discover_output_size(self, input_shape: tuple[int, ...]) -> int:
        raise NotImplementedError

    def close(self) -> None:
        raise NotImplementedError


def _get_tflite_interpreter_class():
    try:
        import tensorflow as tf
    except ImportError as e:
        raise ModelLoadError(
            "TensorFlow is required to run .tflite models. Install the 'tflite' extra."
        ) from e
    return tf.lite.Interpreter


class TFLiteEngine(InferenceEngine):
    backend_name = "tflite"

    def __init__(self, interpreter):
        self.interpreter = interpreter
        self.input_details = interpreter.get_input_details()
        self.output_details = interpreter.get_output_details()

    @classmethod
    def load(cls, model_path: Path, num_threads: int, input_shape: tuple[int, ...]) -> "TFLiteEngine":
        interpreter_cls = _get_tflite_interpreter_class()
        try:
            interpreter = interpreter_cls(model_path=str(model_path), num_threads=num_threads)
            interpreter.allocate_tensors()
            engine = cls(interpreter)
        except Exception as e:
            logger.error(f"TensorFlow Lite rejected model {model_path}: {e}")
            raise ModelLoadError(f"Failed to load model: {e}") from e

        declared_input = tuple(int(d) for d in engine.input_details[0]["shape"])
        if declared_input != tuple(input_shape):
            engine.close()
            raise ModelLoadError(
                f"Model expects input shape {list(declared_input)}, configured for {list(input_shape)}"
            )
        if engine.input_details[0]["dtype"] != np.float32:
            engine.close()
            raise ModelLoadError(
                f"Model expects {np.dtype(engine.input_details[0]['dtype']).name} input; only float32 models are supported"
            )
        return engine

    def run(self, batch: np.ndarray) -> np.ndarray:
        self.interpreter.set_tensor(self.input_details[0]["index"], batch)
        self.interpreter.invoke()
        # get_tensor returns a copy, so the interpreter's buffer may be reused.
        return self.interpreter.get_tensor(self.output_details[0]["index"])

    def discover_output_size(self, input_shape: tuple[int, ...]) -> int:
        shape = [int(d) for d in self.output_details[0]["shape"]]
        if len(shape) == 2 and shape[0] == 1:
            return shape[1]
        if len(shape) == 1:
            return shape[0]
        raise ModelLoadError(f"Model declares output shape {shape}; expected [1, K]")

    def close(self) -> None:
        # The interpreter frees its native buffers once the last reference is dropped.
        self.interpreter = None


class TorchScriptEngine(InferenceEngine):
    backend_name = "torchscript"

    def __init__(self, module: torch.jit.ScriptModule):
        self.module = module

    @classmethod
    def load(cls, model_path: Path, num_threads: int, input_shape: tuple[int, ...]) -> "TorchScriptEngine":
        torch.set_num_threads(num_threads)
        try:
            module = torch.jit.load(str(model_path), map_location="cpu")
        except Exception as e:
            logger.error(f"TorchScript rejected model {model_path}: {e}")
            raise ModelLoadError(f"Failed to load model: {e}") from e
        module.eval()
        return cls(module)

    def run(self, batch: np.ndarray) -> np.ndarray:
        with torch.no_grad():
            output = self.module(torch.from_numpy(batch))
        if isinstance(output, (tuple, list)):
            output = output[0]
        return output.detach().cpu().numpy()

    def discover_output_size(self, input_shape: tuple[int, ...]) -> int:
        # TorchScript modules do not declare output shapes; probe once with a blank input.
        try:
            scores = _flatten_output(self.run(np.zeros(input_shape, dtype=np.float32)))
        except Exception as e:
            logger.error(f"Dry run of TorchScript model failed: {e}")
            raise ModelLoadError(f"Model does not accept input of shape {list(input_shape)}: {e}") from e
        return int(scores.size)

    def close(self) -> None:
        self.module = None


ENGINES = {
    TFLiteEngine.backend_name: TFLiteEngine,
    TorchScriptEngine.backend_name: TorchScriptEngine,
}


@dataclass
class Session:
    """A loaded model together with its engine handle and tensor contract."""
    engine: InferenceEngine
    model_path: Path
    backend: str
    num_threads: int
    input_shape: tuple[int, int, int, int]
    output_size: int
    _closed: bool = field(default=False, init=False, repr=False)

    @property
    def closed(self) -> bool:
        return self._closed

    def close(self) -> None:
        """Releases the engine's resources. Safe to call more than once."""
        if self._closed:
            return
        self.engine.close()
        self._closed = True
        logger.debug(f"Released {self.backend} session for {self.model_path}.")


def select_backend(configured: str, model_path: Path) -> str:
    if configured != "auto":
        return configured
    backend = BACKEND_BY_SUFFIX.get(model_path.suffix.lower())
    if backend is None:
        raise ModelLoadError(
            f"Cannot infer engine backend from '{model_path.name}'. "
            f"Set model.backend to one of {sorted(ENGINES)}."
        )
    return backend


def load_session(model_cfg: ModelConfig, image_size: int) -> Session:
    """
    Loads the bundled model and initializes an inference session.

    The number of raw output scores K is discovered from the model here, once,
    so that an unsupported model is rejected before any image is classified.

    Raises:
        ModelLoadError: asset missing or unreadable, engine unavailable or
            rejecting the model, or a model contract this pipeline cannot decode.
    """
    model_path = resolve_model_path(model_cfg)
    if not model_path.is_file():
        logger.error(f"Model asset not found: {model_path}")
        raise ModelLoadError(f"Model asset not found: {model_path}")

    backend = select_backend(model_cfg.backend, model_path)
    input_shape = (1, image_size, image_size, 3)
    logger.info(f"Loading {backend} model from {model_path} with {model_cfg.num_threads} threads...")

    engine = ENGINES[backend].load(model_path, model_cfg.num_threads, input_shape)
    try:
        output_size = engine.discover_output_size(input_shape)
        if output_size not in SUPPORTED_OUTPUT_SIZES:
            raise ModelLoadError(
                f"Model produces {output_size} scores; only {SUPPORTED_OUTPUT_SIZES} are supported"
            )
    except ModelLoadError:
        engine.close()
        raise

    logger.info(f"Model loaded: input shape {list(input_shape)}, {output_size} output score(s).")
    return Session(
        engine=engine,
        model_path=model_path,
        backend=backend,
        num_threads=model_cfg.num_threads,
        input_shape=input_shape,
        output_size=output_size,
    )


def run_session(session: Session, tensor: np.ndarray) -> np.ndarray:
    """
    Runs the model on a single [S, S, 3] tensor and returns its K raw scores.

    Blocking; there is no cancellation once the engine has been invoked.
    """
    if session.closed:
        raise NotInitializedError("Inference session has been closed")

    batch = np.ascontiguousarray(tensor, dtype=np.float32)[np.newaxis, ...]
    if batch.shape != session.input_shape:
        raise InferenceError(f"Input tensor shape {list(batch.shape)} does not match model input {list(session.input_shape)}")

    try:
        raw = session.engine.run(batch)
    except Exception as e:
        logger.error(f"Inference failed: {e}")
        raise InferenceError(f"Inference failed: {e}") from e

    try:
        scores = _flatten_output(raw)
    except ValueError as e:
        raise InferenceError(str(e)) from e

    if scores.size != session.output_size:
        raise InferenceError(f"Model returned {scores.size} scores, expected {session.output_size}")
    return scores
