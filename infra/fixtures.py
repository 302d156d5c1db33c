"""Bundled binary fixtures.

Fixtures live in ``infra/resources/`` and are read by name through
:mod:`importlib.resources`, so they resolve the same way from a source
checkout and from an installed wheel.

The amplification fixture (see
:data:`core.config.AMPLIFICATION_FIXTURE`) is a serialized
``VulnerableRequest`` whose field 3 (``embedded``) repeats thousands
of times. Most occurrences are empty or tiny embedded messages: each
costs two to seven bytes on the wire but a full message object after
parsing.
"""

import logging
from importlib import resources

from core.exceptions import ConfigurationError

logger: logging.Logger = logging.getLogger(__name__)

_RESOURCE_PACKAGE: str = "infra"
_RESOURCE_DIR: str = "resources"


def load_fixture(name: str) -> bytes:
    """Load a bundled fixture by resource name.

    Args:
        name: File name under ``infra/resources/``.

    Returns:
        The fixture's raw bytes.

    Raises:
        ConfigurationError: If the resource does not exist. A missing
            fixture is a startup failure, never a parse failure.
    """
    resource = (
        resources.files(_RESOURCE_PACKAGE).joinpath(_RESOURCE_DIR).joinpath(name)
    )
    if not resource.is_file():
        raise ConfigurationError(f"Resource not found: {name}")

    data: bytes = resource.read_bytes()
    logger.debug("Loaded fixture %s (%d bytes)", name, len(data))
    return data
