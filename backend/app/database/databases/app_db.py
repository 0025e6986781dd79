"""
App database configuration.
Stores application users with client-side encrypted credentials.

Structure:
- users: username (plain), password (random), ssn (deterministic),
  detailMessage (schema default algorithm), createdAt (date)
"""
from uuid import UUID

from bson.binary import Binary

DB_NAME = "app"


class Collections:
    """Collection names in the app database."""
    USERS = "users"


USERS_KEY_ID = UUID("d1594b63-65c2-40b0-82ca-adfa1529cc7d")

USERS_VALIDATOR = {
    "$jsonSchema": {
        "bsonType": "object",
        "required": ["username", "password"],
        "encryptMetadata": {
            "keyId": [Binary.from_uuid(USERS_KEY_ID)],
            "algorithm": "AEAD_AES_256_CBC_HMAC_SHA_512-Deterministic",
        },
        "properties": {
            "username": {
                "bsonType": "string",
            },
            "password": {
                "encrypt": {
                    "bsonType": "string",
                    "algorithm": "AEAD_AES_256_CBC_HMAC_SHA_512-Random",
                },
            },
            "ssn": {
                "encrypt": {
                    "bsonType": "string",
                    "algorithm": "AEAD_AES_256_CBC_HMAC_SHA_512-Deterministic",
                },
            },
            "detailMessage": {
                "encrypt": {
                    "bsonType": "string",
                },
            },
            "createdAt": {
                "bsonType": "date",
            },
        },
    },
}

USERS_VALIDATION_LEVEL = "strict"
USERS_VALIDATION_ACTION = "error"

# Manifest for the schema registry
DB_MANIFEST = {
    "db_name": DB_NAME,
    "purpose": "Application users with encrypted credentials",
    "collections": {
        Collections.USERS: {
            "$jsonSchema": USERS_VALIDATOR["$jsonSchema"],
            "validationLevel": USERS_VALIDATION_LEVEL,
            "validationAction": USERS_VALIDATION_ACTION,
        },
    },
}
