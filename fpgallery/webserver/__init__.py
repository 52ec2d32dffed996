"""
Webserver Package - Fingerprint Gallery
FastAPI-based REST API over the enrollment/verification controller, backed by an SQLCipher blob store.
"""

from .server import app, install_controller, build_controller
from .database import BlobDatabase
from .logger import get_logger

__version__ = "1.0.0"
__all__ = ['app', 'install_controller', 'build_controller', 'BlobDatabase', 'get_logger']
