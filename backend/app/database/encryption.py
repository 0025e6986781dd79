"""
Automatic client-side field level encryption for the MongoDB client.

With a local master key configured, the client encrypts the fields named by
the registry schema map on write and decrypts them on read. Data keys live
in the key vault collection and are managed outside this service.
"""
from pathlib import Path
from typing import Any, Union

from pymongo.encryption_options import AutoEncryptionOpts

from app.config import Settings

# Size of a local KMS provider master key, in bytes.
LOCAL_MASTER_KEY_SIZE = 96


def read_master_key(path: Union[str, Path]) -> bytes:
    """
    Read a local KMS master key file.

    Raises:
        OSError: If the file cannot be read
        ValueError: If the key does not have the expected size
    """
    key = Path(path).read_bytes()
    if len(key) != LOCAL_MASTER_KEY_SIZE:
        raise ValueError(
            f"master key in {path} must be {LOCAL_MASTER_KEY_SIZE} bytes, got {len(key)}"
        )
    return key


def build_auto_encryption_opts(
    settings: Settings,
    schema_map: dict[str, dict[str, Any]],
) -> AutoEncryptionOpts:
    """
    Auto encryption options for the local KMS provider.

    Args:
        settings: Settings with master_key_file set
        schema_map: "db.collection" -> $jsonSchema of the encrypted collections
    """
    extra: dict[str, Any] = {}
    if settings.crypt_shared_lib_path:
        extra["crypt_shared_lib_path"] = settings.crypt_shared_lib_path

    return AutoEncryptionOpts(
        kms_providers={"local": {"key": read_master_key(settings.master_key_file)}},
        key_vault_namespace=settings.key_vault_namespace,
        schema_map=schema_map,
        **extra,
    )
