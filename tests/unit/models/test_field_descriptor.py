"""Tests for FieldDescriptor parsing, kinds and encodings."""

from datocms_node.models import EncodingHint, FieldDescriptor, FieldKind
from tests.factories import FieldFactory


class TestFromApi:
    """Tests for building descriptors from CMA field resources."""

    def test_reads_validators_and_appearance(self) -> None:
        """Validators and editor hints are carried over."""
        field = FieldFactory.create(
            "status",
            "string",
            label="Status",
            required=True,
            unique=True,
            enum_values=["draft", "live"],
            editor="single_line",
            position=4,
        )
        descriptor = FieldDescriptor.from_api(field)

        assert descriptor.id == "fld_status"
        assert descriptor.key == "status"
        assert descriptor.label == "Status"
        assert descriptor.required is True
        assert descriptor.unique is True
        assert descriptor.enum_values == ("draft", "live")
        assert descriptor.editor == "single_line"
        assert descriptor.position == 4

    def test_missing_metadata_defaults(self) -> None:
        """A bare field resource still gives a usable descriptor."""
        descriptor = FieldDescriptor.from_api({"api_key": "title"})

        assert descriptor.label == "title"
        assert descriptor.field_type == "string"
        assert descriptor.localized is False
        assert descriptor.enum_values is None
        assert descriptor.position == 0

    def test_format_pattern(self) -> None:
        """Predefined format patterns are read from the format validator."""
        field = FieldFactory.create("website", format_pattern="url")
        assert FieldDescriptor.from_api(field).format_pattern == "url"


class TestKind:
    """Tests for field kind classification."""

    def test_known_types(self) -> None:
        assert FieldDescriptor(key="a", field_type="float").kind is FieldKind.NUMBER
        assert FieldDescriptor(key="a", field_type="links").kind is FieldKind.LINKS
        assert FieldDescriptor(key="a", field_type="gallery").kind is FieldKind.GALLERY
        assert FieldDescriptor(key="a", field_type="modular_content").kind is FieldKind.BLOCKS
        assert FieldDescriptor(key="a", field_type="seo").kind is FieldKind.STRUCTURED

    def test_enum_validator_makes_enum(self) -> None:
        """Text fields restricted to a value list are enums."""
        descriptor = FieldDescriptor(key="a", field_type="string", enum_values=("x", "y"))
        assert descriptor.kind is FieldKind.ENUM

    def test_unknown_type_is_text(self) -> None:
        assert FieldDescriptor(key="a", field_type="hologram").kind is FieldKind.TEXT


class TestEncoding:
    """Tests for the wire encoding hint."""

    def test_string_set_editors(self) -> None:
        """JSON fields edited as checkbox groups or multi-selects hold string sets."""
        for editor in ("string_checkbox_group", "string_multi_select"):
            descriptor = FieldDescriptor(key="tags", field_type="json", editor=editor)
            assert descriptor.encoding is EncodingHint.STRING_SET

    def test_plain_json_is_structured(self) -> None:
        descriptor = FieldDescriptor(key="meta", field_type="json", editor="json")
        assert descriptor.encoding is EncodingHint.STRUCTURED

    def test_localized_is_locale_map(self) -> None:
        descriptor = FieldDescriptor(key="title", field_type="string", localized=True)
        assert descriptor.encoding is EncodingHint.LOCALE_MAP

    def test_list_kinds(self) -> None:
        descriptor = FieldDescriptor(key="related", field_type="links")
        assert descriptor.encoding is EncodingHint.LIST

    def test_plain_text(self) -> None:
        assert FieldDescriptor(key="sku").encoding is EncodingHint.PLAIN
