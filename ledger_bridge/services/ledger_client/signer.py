"""
Signer loading.

The offline signing adapter lives outside this project; it is plugged in
through a ``module:attribute`` path pointing at a factory that accepts
the application settings and returns a TransactionSigner.
"""

import importlib
from typing import Any

from loguru import logger

from ledger_bridge.services.ledger_client.base import TransactionSigner


def load_signer(path: str, settings: Any) -> TransactionSigner:
    """
    Import and build the transaction signer.

    Args:
        path: Factory location in 'package.module:attribute' form
        settings: Application settings passed to the factory

    Returns:
        TransactionSigner instance

    Raises:
        ValueError: If path is malformed
        ImportError: If the module cannot be imported
        AttributeError: If the factory does not exist
        TypeError: If the factory result has no ``sign`` coroutine
    """
    module_name, sep, attribute = path.partition(":")
    if not sep or not module_name or not attribute:
        raise ValueError(f"Invalid signer path: {path!r}")

    module = importlib.import_module(module_name)
    factory = getattr(module, attribute)
    signer = factory(settings)

    if not callable(getattr(signer, "sign", None)):
        raise TypeError(f"{path} did not return an object with a sign() method")

    logger.info(f"Transaction signer loaded from {path}")
    return signer
