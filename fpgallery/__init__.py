"""
fpgallery - Fingerprint enrollment/verification controller
Local gallery of fingerprint templates matched 1:N through a SecuGen-style device service.
"""

from .blobstore import BlobStore, MemoryBlobStore
from .capture import CaptureGateway
from .template_store import TemplateStore
from .matching import MatchEngine
from .audit import AuditLog
from .controller import GalleryController

__version__ = "1.0.0"
__all__ = [
    'BlobStore', 'MemoryBlobStore', 'CaptureGateway', 'TemplateStore',
    'MatchEngine', 'AuditLog', 'GalleryController',
]
