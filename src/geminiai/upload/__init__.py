"""Resumable uploads to the Gemini Files API.

Public API
----------
.. autofunction:: upload_file
.. autofunction:: upload_files
.. autoclass:: UploadSession
.. autoclass:: UploadPhaseSM
.. autoclass:: UploadProgressTracker
"""

from geminiai.upload.batch import upload_files
from geminiai.upload.fsm import UploadPhaseSM
from geminiai.upload.progress import UploadProgressTracker
from geminiai.upload.session import UploadSession, upload_file

__all__ = [
    "UploadPhaseSM",
    "UploadProgressTracker",
    "UploadSession",
    "upload_file",
    "upload_files",
]
