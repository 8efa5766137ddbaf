"""
Background execution of classification requests.

Classification is blocking and CPU-bound, so callers on latency-sensitive
threads hand images to a ClassificationWorker and get a Future back. The
worker runs requests one at a time on a single thread, which is the
serialization a SkinLesionClassifier needs.
"""
import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor

import numpy as np
from PIL import Image

from .api_schemas import ClassificationOutcome
from .exceptions import NotInitializedError
from .handler import SkinLesionClassifier

logger = logging.getLogger("dermaclass.inference")


class ClassificationWorker:
    """Runs classify() calls for one classifier on a dedicated thread."""

    def __init__(self, classifier: SkinLesionClassifier, thread_name_prefix: str = "dermaclass-worker"):
        self.classifier = classifier
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix=thread_name_prefix)
        self._shutdown_event = threading.Event()
        self._submit_lock = threading.Lock()

    def submit(self, image: bytes | Image.Image | np.ndarray) -> "Future[ClassificationOutcome]":
        """
        Schedules one image for classification.

        The returned future resolves to a ClassificationOutcome; pipeline
        failures are reported in the outcome rather than raised from result().
        """
        with self._submit_lock:
            if self._shutdown_event.is_set():
                raise NotInitializedError("ClassificationWorker has been shut down")
            return self._executor.submit(self.classifier.try_classify, image)

    def shutdown(self, cancel_pending: bool = True, close_classifier: bool = True) -> None:
        """
        Stops accepting requests, optionally cancels queued ones, waits for the
        running request to finish and then closes the classifier.
        """
        with self._submit_lock:
            if self._shutdown_event.is_set():
                logger.debug("ClassificationWorker shutdown already completed.")
                return
            self._shutdown_event.set()

        logger.info(f"Shutting down ClassificationWorker (cancel_pending={cancel_pending}).")
        self._executor.shutdown(wait=True, cancel_futures=cancel_pending)

        if close_classifier:
            self.classifier.close()

    def __enter__(self) -> "ClassificationWorker":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.shutdown()
