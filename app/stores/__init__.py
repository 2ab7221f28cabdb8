"""
Store wiring. The backend (local JSON files or redis) is chosen once from
settings; callers only ever see the RecordStore capability and the domain
wrappers built on it.
"""
from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from app.config import Settings
from app.models.folder_mapping import FolderMapping
from app.models.registration import RegistrationRecord
from app.models.signature import SignatureRecord
from app.stores.base import RecordStore
from app.stores.file_backend import JsonFileStore
from app.stores.folder_mappings import FolderMappingStore, mapping_key
from app.stores.signatures import SignatureStore

REGISTRATIONS_FILE = "registrations.json"
FOLDER_MAPPINGS_FILE = "folder-mappings.json"
SIGNATURES_FILE = "signatures.json"


@dataclass
class Stores:
    registrations: RecordStore[RegistrationRecord]
    folder_mappings: FolderMappingStore
    signatures: SignatureStore


def _registration_key(rec: RegistrationRecord) -> str:
    return rec.registration_id


def _folder_key(rec: FolderMapping) -> str:
    return mapping_key(rec.email)


def _signature_key(rec: SignatureRecord) -> str:
    return rec.signature_id


def build_file_stores(data_dir: str | Path, signature_ttl_ms: int) -> Stores:
    base = Path(data_dir)
    return Stores(
        registrations=JsonFileStore(base / REGISTRATIONS_FILE, RegistrationRecord, _registration_key),
        folder_mappings=FolderMappingStore(JsonFileStore(base / FOLDER_MAPPINGS_FILE, FolderMapping, _folder_key)),
        signatures=SignatureStore(
            JsonFileStore(base / SIGNATURES_FILE, SignatureRecord, _signature_key),
            ttl_ms=signature_ttl_ms,
        ),
    )


def build_redis_stores(client, signature_ttl_ms: int) -> Stores:
    from app.stores.redis_backend import RedisStore

    return Stores(
        registrations=RedisStore(client, RegistrationRecord, _registration_key, "registration", "registrations:index"),
        folder_mappings=FolderMappingStore(
            RedisStore(client, FolderMapping, _folder_key, "folder-mapping", "folder-mappings:index")
        ),
        signatures=SignatureStore(
            RedisStore(
                client,
                SignatureRecord,
                _signature_key,
                "signature",
                "signatures:index",
                ttl_seconds=max(1, signature_ttl_ms // 1000),
            ),
            ttl_ms=signature_ttl_ms,
        ),
    )


def build_stores(settings: Settings) -> Stores:
    ttl_ms = settings.signature_ttl_minutes * 60 * 1000
    if settings.storage_backend == "redis":
        import redis

        return build_redis_stores(redis.Redis.from_url(settings.redis_url), ttl_ms)
    return build_file_stores(settings.data_dir, ttl_ms)
