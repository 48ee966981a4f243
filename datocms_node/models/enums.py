"""Enums for the node domain."""

from enum import Enum


class FieldKind(str, Enum):
    """Normalized kind of a DatoCMS model field."""

    TEXT = "text"
    NUMBER = "number"
    BOOLEAN = "boolean"
    DATE_TIME = "date_time"
    JSON = "json"
    LINK = "link"
    LINKS = "links"
    FILE = "file"
    GALLERY = "gallery"
    ENUM = "enum"
    BLOCK = "block"
    BLOCKS = "blocks"
    STRUCTURED = "structured"


class EncodingHint(str, Enum):
    """How a field's value is encoded on the wire.

    Derived from the field descriptor at fetch time so that decoding is
    driven by the schema rather than by the literal shape of the value.
    """

    PLAIN = "plain"
    STRING_SET = "string_set"
    LOCALE_MAP = "locale_map"
    LIST = "list"
    STRUCTURED = "structured"


class Resource(str, Enum):
    """Resource the node operates on."""

    RECORD = "record"
    UPLOAD = "upload"
    ITEM_TYPE = "itemType"
    BLOCK = "block"


class Operation(str, Enum):
    """Operation names across all resources."""

    CREATE = "create"
    GET = "get"
    GET_ALL = "getAll"
    UPDATE = "update"
    UPSERT = "upsert"
    DELETE = "delete"
    PUBLISH = "publish"
    UNPUBLISH = "unpublish"
    BULK_CREATE = "bulkCreate"


class MappingMode(str, Enum):
    """Resource-mapper input mode."""

    DEFINE_BELOW = "defineBelow"
    AUTO_MAP_INPUT_DATA = "autoMapInputData"


class FilterOperator(str, Enum):
    """Operators accepted by the record filter DSL."""

    EQ = "eq"
    NEQ = "neq"
    GT = "gt"
    GTE = "gte"
    LT = "lt"
    LTE = "lte"
    IN = "in"
    NOT_IN = "notIn"
    EXISTS = "exists"


class UploadSource(str, Enum):
    """Where a single upload takes its bytes from."""

    BINARY = "binary"
    URL = "url"


class UrlExtractionMode(str, Enum):
    """How bulk upload finds the URLs to upload.

    FIELD reads one property of the input item, LIST reads a
    comma/newline separated parameter, SCAN walks the whole input item.
    """

    FIELD = "field"
    LIST = "list"
    SCAN = "scan"


class UpsertState(str, Enum):
    """States of the upsert resolver."""

    COLLECTING_INPUT = "collecting_input"
    MATCH_FIELD_SELECTED = "match_field_selected"
    SEARCHING = "searching"
    NO_MATCH = "no_match"
    SINGLE_MATCH = "single_match"
    MULTI_MATCH = "multi_match"
    RESOLVED = "resolved"
    FAILED = "failed"
