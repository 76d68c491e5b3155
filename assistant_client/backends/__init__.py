"""
Protocol backends for the embedded assistant API
"""

from .base import ConversationBackend
from .factory import BackendFactory, create_backend, DEFAULT_REVISION
from .v1alpha1 import V1Alpha1Backend
from .v1alpha2 import V1Alpha2Backend

__all__ = [
    'ConversationBackend',
    'BackendFactory',
    'create_backend',
    'DEFAULT_REVISION',
    'V1Alpha1Backend',
    'V1Alpha2Backend',
]
