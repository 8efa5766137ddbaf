import logging

import pytest


@pytest.fixture(autouse=True)
def restore_dermaclass_logger():
    """Undo create_logger() so caplog keeps seeing records from later tests."""
    yield
    for name in ("dermaclass", "dermaclass.inference"):
        logger = logging.getLogger(name)
        for handler in logger.handlers[:]:
            logger.removeHandler(handler)
            handler.close()
        logger.setLevel(logging.NOTSET)
        logger.propagate = True
