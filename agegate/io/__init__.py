"""
Input/output operations for AgeGate.

This package provides robust file download capabilities used by the
secondary component installer and the self-update download strategy.

Modules
-------
download : module
    HTTP(S) file download with retries, atomic writes, and hashing.

Public API
----------
download_file : function
    Download a file from a URL with robustness and reproducibility.
make_session : function
    Create a requests.Session with retry/backoff defaults.
"""

from .download import download_file, make_session

__all__ = ["download_file", "make_session"]
