"""
Persisted record shapes. Each store holds one of these; the JSON field names
(camelCase aliases) are the on-disk / in-redis layout.
"""
from app.models.registration import RegistrationRecord
from app.models.folder_mapping import FolderMapping
from app.models.signature import SignatureRecord

__all__ = [
    "RegistrationRecord",
    "FolderMapping",
    "SignatureRecord",
]
