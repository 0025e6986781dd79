"""
Tests for schema loading and rendering.

These tests cover:
- Parsing the $jsonSchema shape of the users collection
- Parsing the flat record shape
- Load-time rejection (MalformedSchema, UnknownAlgorithm)
- Rendering createCollection options and driver schema maps
- Loading Extended JSON schema files
"""

import uuid

import pytest
from bson.binary import Binary

from app.core.exceptions import MalformedSchema, UnknownAlgorithm
from app.models.schema import (
    BsonType,
    EncryptedField,
    EncryptionAlgorithm,
    PlainField,
    ValidationAction,
    ValidationLevel,
)
from app.services.schema_loader import (
    build_schema_map,
    load_schema_file,
    load_schemas,
    parse_json_schema,
    parse_key_id,
    parse_record,
    to_collection_options,
    to_json_schema,
)

KEY_ID = uuid.UUID("d1594b63-65c2-40b0-82ca-adfa1529cc7d")
DETERMINISTIC = "AEAD_AES_256_CBC_HMAC_SHA_512-Deterministic"
RANDOM = "AEAD_AES_256_CBC_HMAC_SHA_512-Random"


class TestParseJsonSchema:
    """Tests for parse_json_schema."""

    def test_users_schema(self, users_schema):
        assert users_schema.required_fields == ("username", "password")
        assert users_schema.encrypt_metadata.key_id == KEY_ID
        assert users_schema.encrypt_metadata.algorithm == EncryptionAlgorithm.DETERMINISTIC
        assert users_schema.validation_level == ValidationLevel.STRICT
        assert users_schema.validation_action == ValidationAction.ERROR

        assert users_schema.properties["username"] == PlainField(bson_type=BsonType.STRING)
        assert users_schema.properties["createdAt"] == PlainField(bson_type=BsonType.DATE)
        assert users_schema.properties["password"] == EncryptedField(
            bson_type=BsonType.STRING,
            algorithm=EncryptionAlgorithm.RANDOM,
        )
        assert users_schema.properties["detailMessage"].algorithm is None

    def test_field_order_is_kept(self, users_schema):
        assert list(users_schema.properties) == [
            "username", "password", "ssn", "detailMessage", "createdAt",
        ]

    def test_full_validator_is_unwrapped(self, users_json_schema):
        schema = parse_json_schema({"$jsonSchema": users_json_schema})
        assert schema.required_fields == ("username", "password")

    def test_level_and_action(self, users_json_schema):
        schema = parse_json_schema(users_json_schema, "off", "warn")

        assert schema.validation_level == ValidationLevel.OFF
        assert schema.validation_action == ValidationAction.WARN

    def test_moderate_is_an_alias_of_warn(self, users_json_schema):
        schema = parse_json_schema(users_json_schema, "moderate")
        assert schema.validation_level == ValidationLevel.WARN

    def test_id_property_is_skipped(self, users_json_schema):
        users_json_schema["properties"]["_id"] = {"bsonType": "objectId"}

        schema = parse_json_schema(users_json_schema)

        assert "_id" not in schema.properties

    def test_schema_without_encryption(self):
        schema = parse_json_schema({
            "bsonType": "object",
            "required": ["name"],
            "properties": {"name": {"bsonType": "string"}},
        })

        assert schema.encrypt_metadata is None
        assert schema.encrypted_fields == []


class TestLoadTimeErrors:
    """Malformed schemas are rejected when loaded, never when validating."""

    def test_unknown_field_algorithm(self, users_json_schema):
        users_json_schema["properties"]["ssn"]["encrypt"]["algorithm"] = "AES-256-GCM"

        with pytest.raises(UnknownAlgorithm) as exc_info:
            parse_json_schema(users_json_schema)

        assert exc_info.value.algorithm == "AES-256-GCM"
        assert "properties.ssn" in str(exc_info.value)

    def test_unknown_default_algorithm(self, users_json_schema):
        users_json_schema["encryptMetadata"]["algorithm"] = "Deterministic"

        with pytest.raises(UnknownAlgorithm):
            parse_json_schema(users_json_schema)

    def test_unknown_algorithm_is_a_malformed_schema(self, users_json_schema):
        users_json_schema["encryptMetadata"]["algorithm"] = "nope"

        with pytest.raises(MalformedSchema):
            parse_json_schema(users_json_schema)

    @pytest.mark.parametrize("key_id", [
        "not-a-uuid",
        [],
        [Binary.from_uuid(KEY_ID), Binary.from_uuid(uuid.uuid4())],
        Binary(b"0123456789abcdef", 0),
        "/keyAltName",
        12345,
    ])
    def test_malformed_key_id(self, users_json_schema, key_id):
        users_json_schema["encryptMetadata"]["keyId"] = key_id

        with pytest.raises(MalformedSchema):
            parse_json_schema(users_json_schema)

    def test_missing_key_id(self, users_json_schema):
        del users_json_schema["encryptMetadata"]["keyId"]

        with pytest.raises(MalformedSchema, match="keyId is required"):
            parse_json_schema(users_json_schema)

    def test_required_field_not_declared(self, users_json_schema):
        users_json_schema["required"].append("email")

        with pytest.raises(MalformedSchema, match="email"):
            parse_json_schema(users_json_schema)

    def test_duplicate_required_field(self, users_json_schema):
        users_json_schema["required"] = ["username", "username"]

        with pytest.raises(MalformedSchema):
            parse_json_schema(users_json_schema)

    def test_unknown_bson_type(self, users_json_schema):
        users_json_schema["properties"]["username"]["bsonType"] = "varchar"

        with pytest.raises(MalformedSchema, match="varchar"):
            parse_json_schema(users_json_schema)

    def test_multiple_bson_types(self, users_json_schema):
        users_json_schema["properties"]["username"]["bsonType"] = ["string", "null"]

        with pytest.raises(MalformedSchema):
            parse_json_schema(users_json_schema)

    def test_property_without_type(self, users_json_schema):
        users_json_schema["properties"]["username"] = {"description": "login name"}

        with pytest.raises(MalformedSchema):
            parse_json_schema(users_json_schema)

    def test_encrypted_field_without_any_algorithm(self, users_json_schema):
        del users_json_schema["encryptMetadata"]["algorithm"]

        with pytest.raises(MalformedSchema, match="detailMessage"):
            parse_json_schema(users_json_schema)

    def test_encrypted_field_without_metadata(self, users_json_schema):
        del users_json_schema["encryptMetadata"]

        with pytest.raises(MalformedSchema):
            parse_json_schema(users_json_schema)

    @pytest.mark.parametrize("bson_type", ["double", "decimal", "bool", "object", "array"])
    def test_deterministic_not_allowed_for_type(self, users_json_schema, bson_type):
        users_json_schema["properties"]["ssn"]["encrypt"]["bsonType"] = bson_type

        with pytest.raises(MalformedSchema, match="deterministic"):
            parse_json_schema(users_json_schema)

    def test_random_allowed_for_double(self, users_json_schema):
        users_json_schema["properties"]["password"]["encrypt"]["bsonType"] = "double"

        schema = parse_json_schema(users_json_schema)

        assert schema.properties["password"].bson_type == BsonType.DOUBLE

    def test_non_object_root(self, users_json_schema):
        users_json_schema["bsonType"] = "array"

        with pytest.raises(MalformedSchema):
            parse_json_schema(users_json_schema)

    def test_not_a_mapping(self):
        with pytest.raises(MalformedSchema):
            parse_json_schema(["username"])

    def test_bad_validation_level(self, users_json_schema):
        with pytest.raises(MalformedSchema, match="validationLevel"):
            parse_json_schema(users_json_schema, "sometimes")

    def test_bad_validation_action(self, users_json_schema):
        with pytest.raises(MalformedSchema, match="validationAction"):
            parse_json_schema(users_json_schema, "strict", "drop")


class TestParseKeyId:
    """Tests for the accepted keyId forms."""

    @pytest.mark.parametrize("value", [
        KEY_ID,
        str(KEY_ID),
        Binary.from_uuid(KEY_ID),
        [Binary.from_uuid(KEY_ID)],
        (KEY_ID,),
    ])
    def test_accepted_forms(self, value):
        assert parse_key_id(value) == KEY_ID


class TestParseRecord:
    """Tests for the flat record shape."""

    def test_record_matches_json_schema(self, users_record, users_schema):
        assert parse_record(users_record) == users_schema

    def test_algorithm_on_plain_field(self, users_record):
        users_record["fields"]["username"]["algorithm"] = DETERMINISTIC

        with pytest.raises(MalformedSchema):
            parse_record(users_record)

    def test_unknown_algorithm(self, users_record):
        users_record["fields"]["password"]["algorithm"] = "Random"

        with pytest.raises(UnknownAlgorithm):
            parse_record(users_record)

    def test_field_without_type(self, users_record):
        del users_record["fields"]["ssn"]["type"]

        with pytest.raises(MalformedSchema):
            parse_record(users_record)

    @pytest.mark.parametrize("flag", ["false", "true", 0, 1, None])
    def test_encrypted_flag_must_be_boolean(self, users_record, flag):
        users_record["fields"]["username"]["encrypted"] = flag

        with pytest.raises(MalformedSchema, match="encrypted must be a boolean"):
            parse_record(users_record)

    def test_encrypted_flag_defaults_to_plain(self, users_record):
        del users_record["fields"]["username"]["encrypted"]

        schema = parse_record(users_record)

        assert schema.properties["username"] == PlainField(bson_type=BsonType.STRING)


class TestRendering:
    """Tests for to_json_schema and to_collection_options."""

    def test_json_schema_round_trip(self, users_schema):
        assert parse_json_schema(to_json_schema(users_schema)) == users_schema

    def test_json_schema_shape(self, users_schema):
        json_schema = to_json_schema(users_schema)

        assert json_schema["bsonType"] == "object"
        assert json_schema["required"] == ["username", "password"]
        assert json_schema["encryptMetadata"] == {
            "keyId": [Binary.from_uuid(KEY_ID)],
            "algorithm": DETERMINISTIC,
        }
        assert json_schema["properties"]["password"] == {
            "encrypt": {"bsonType": "string", "algorithm": RANDOM},
        }
        assert json_schema["properties"]["detailMessage"] == {"encrypt": {"bsonType": "string"}}
        assert json_schema["properties"]["createdAt"] == {"bsonType": "date"}

    def test_strict_closes_the_document(self, users_schema):
        json_schema = to_json_schema(users_schema)

        assert json_schema["additionalProperties"] is False
        assert json_schema["properties"]["_id"] == {}

    def test_warn_level_leaves_the_document_open(self, make_users_schema):
        json_schema = to_json_schema(make_users_schema(level="warn"))

        assert "additionalProperties" not in json_schema
        assert "_id" not in json_schema["properties"]

    @pytest.mark.parametrize("level,server_level", [
        ("off", "off"),
        ("warn", "moderate"),
        ("strict", "strict"),
    ])
    def test_collection_options(self, make_users_schema, level, server_level):
        options = to_collection_options(make_users_schema(level=level))

        assert options["validationLevel"] == server_level
        assert options["validationAction"] == "error"
        assert "$jsonSchema" in options["validator"]

    def test_schema_map(self, users_schema):
        schema_map = build_schema_map({"app.users": users_schema})

        assert list(schema_map) == ["app.users"]
        assert schema_map["app.users"]["encryptMetadata"]["keyId"] == [Binary.from_uuid(KEY_ID)]


class TestSchemaFiles:
    """Tests for load_schema_file and load_schemas."""

    def test_load_file_with_both_shapes(self, schema_file):
        schemas = load_schema_file(schema_file)

        assert list(schemas) == ["app.users", "hr.employees"]
        assert schemas["app.users"].encrypt_metadata.key_id == KEY_ID
        assert schemas["app.users"].properties["password"].algorithm == EncryptionAlgorithm.RANDOM
        assert schemas["hr.employees"].properties["ssn"].algorithm == EncryptionAlgorithm.DETERMINISTIC

    def test_invalid_json(self, tmp_path):
        path = tmp_path / "broken.json"
        path.write_text("{not json")

        with pytest.raises(MalformedSchema, match="invalid JSON"):
            load_schema_file(path)

    def test_file_not_utf8(self, tmp_path):
        path = tmp_path / "latin1.json"
        path.write_bytes(b'{"app.users": {"fields": {"nom\xff": {"type": "string"}}}}')

        with pytest.raises(MalformedSchema, match="UTF-8"):
            load_schema_file(path)

    def test_missing_file(self, tmp_path):
        with pytest.raises(OSError):
            load_schema_file(tmp_path / "missing.json")

    def test_namespace_needs_a_collection(self, users_record):
        with pytest.raises(MalformedSchema, match="db.collection"):
            load_schemas({"users": users_record})

    def test_entry_needs_a_known_shape(self):
        with pytest.raises(MalformedSchema):
            load_schemas({"app.users": {"validationLevel": "strict"}})

    def test_validator_entry(self, users_json_schema):
        schemas = load_schemas({
            "app.users": {
                "validator": {"$jsonSchema": users_json_schema},
                "validationLevel": "moderate",
                "validationAction": "warn",
            },
        })

        assert schemas["app.users"].validation_level == ValidationLevel.WARN
        assert schemas["app.users"].validation_action == ValidationAction.WARN
