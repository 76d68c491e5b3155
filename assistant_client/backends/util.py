"""Helpers shared by the protocol backends."""

import logging

logger = logging.getLogger(__name__)


def coerce_enum(enum_cls, value):
    """Map a wire enum number onto ``enum_cls``; unknown numbers become member 0"""
    try:
        return enum_cls(int(value))
    except ValueError:
        logger.debug(f"Unknown {enum_cls.__name__} value {value!r} on the wire")
        return enum_cls(0)
