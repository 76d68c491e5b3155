# assistant_client/backends/factory.py
"""
Factory for selecting the protocol backend of a conversation manager
"""

import logging

from .base import ConversationBackend
from .v1alpha1 import V1Alpha1Backend
from .v1alpha2 import V1Alpha2Backend

logger = logging.getLogger(__name__)

DEFAULT_REVISION = "v1alpha2"

_BACKENDS = {
    V1Alpha2Backend.revision: V1Alpha2Backend,
    V1Alpha1Backend.revision: V1Alpha1Backend,
}


class BackendFactory:
    """Creates backends by API revision name"""

    @staticmethod
    def available() -> list:
        return sorted(_BACKENDS)

    @staticmethod
    def create(revision: str = DEFAULT_REVISION, **kwargs) -> ConversationBackend:
        key = (revision or DEFAULT_REVISION).strip().lower()
        backend_cls = _BACKENDS.get(key)
        if backend_cls is None:
            raise ValueError(
                f"Unknown API revision {revision!r}; expected one of {', '.join(BackendFactory.available())}"
            )
        logger.info(f"✅ Using embedded assistant API {key}")
        return backend_cls(**kwargs)


def create_backend(revision: str = DEFAULT_REVISION, **kwargs) -> ConversationBackend:
    return BackendFactory.create(revision, **kwargs)
