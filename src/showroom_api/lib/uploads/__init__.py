"""Upload validation: filename rules, category policy, signatures and the gate.

Public API:
    - ``UploadGate``: validate, store and verify one upload
    - ``UploadArtifact``, ``UploadStatus``: outcome of an accepted upload
    - ``UploadRejectedError``, ``RejectionReason``: rejection signalling
    - ``UploadCategory``, ``CATEGORY_POLICIES``: the category policy table
    - ``CategoryFileStorage``: ``{root}/{category}/{stored_name}`` storage
    - ``verify``, ``has_signature``: magic-number checks
    - ``cleanup_stale_uploads``: age-based sweep of stored files
"""

from showroom_api.lib.uploads.errors import RejectionReason, UploadRejectedError
from showroom_api.lib.uploads.gate import UploadArtifact, UploadGate, UploadStatus
from showroom_api.lib.uploads.maintenance import cleanup_stale_uploads
from showroom_api.lib.uploads.policy import CATEGORY_POLICIES, CategoryPolicy, UploadCategory
from showroom_api.lib.uploads.signatures import has_signature, verify
from showroom_api.lib.uploads.storage import CategoryFileStorage

__all__ = [
    "CATEGORY_POLICIES",
    "CategoryFileStorage",
    "CategoryPolicy",
    "RejectionReason",
    "UploadArtifact",
    "UploadCategory",
    "UploadGate",
    "UploadRejectedError",
    "UploadStatus",
    "cleanup_stale_uploads",
    "has_signature",
    "verify",
]
