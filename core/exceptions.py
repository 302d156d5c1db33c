"""Harness-level error types.

Codec failures are raised by the codec wrapper as
:class:`infra.codec.CodecError`; this module holds the errors the
harness raises about its own setup.
"""


class ConfigurationError(Exception):
    """Invalid harness configuration detected before measurement.

    Covers bad CLI input, invalid configuration values and missing
    fixture resources. Fatal: the process exits non-zero before any
    timed work begins.
    """
