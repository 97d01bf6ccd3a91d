"""Tests for custom field value encoding, decoding and validation."""

import uuid
from datetime import date
from decimal import Decimal
from types import SimpleNamespace

import pytest

from app.db.enums import FieldKind
from app.services.field_codec import (
    CodecRegistry,
    FieldValueValidator,
    InvalidFieldValue,
    RequiredFieldMissing,
    TextCodec,
    UnknownField,
    build_default_registry,
    dedupe_options,
)


@pytest.fixture
def validator() -> FieldValueValidator:
    return FieldValueValidator(build_default_registry())


def definition(kind, name="Field", is_required=False, options=None, default_value=None):
    return SimpleNamespace(
        id=uuid.uuid4(),
        name=name,
        field_kind=kind.value if isinstance(kind, FieldKind) else kind,
        is_required=is_required,
        options=options,
        default_value=default_value,
    )


# =============================================================================
# Registry
# =============================================================================


def test_registry_covers_every_kind():
    registry = build_default_registry()
    for kind in FieldKind:
        assert kind in registry
        assert registry.get(kind.value) is registry.get(kind)


def test_registry_rejects_missing_kinds():
    with pytest.raises(RuntimeError, match="dropdown"):
        CodecRegistry({kind: TextCodec() for kind in FieldKind if kind != FieldKind.DROPDOWN})


def test_registry_unknown_kind_not_contained():
    assert "rating" not in build_default_registry()


# =============================================================================
# Round trips
# =============================================================================


@pytest.mark.parametrize(
    "kind,raw,expected",
    [
        (FieldKind.TEXT, "Hello", "Hello"),
        (FieldKind.TEXTAREA, "Line one\nLine two", "Line one\nLine two"),
        (FieldKind.EMAIL, "a@example.com", "a@example.com"),
        (FieldKind.PHONE, "+1 (555) 010-9999", "+1 (555) 010-9999"),
        (FieldKind.URL, "https://example.com/x", "https://example.com/x"),
        (FieldKind.NUMBER, "42", Decimal("42")),
        (FieldKind.NUMBER, 12.5, Decimal("12.5")),
        (FieldKind.CURRENCY, "5000000", Decimal("5000000")),
        (FieldKind.DATE, "2024-01-05", date(2024, 1, 5)),
        (FieldKind.DATE, "2024-01-05T00:00:00Z", date(2024, 1, 5)),
        (FieldKind.CHECKBOX, True, True),
        (FieldKind.CHECKBOX, "yes", True),
        (FieldKind.DROPDOWN, "Gold", "Gold"),
        (FieldKind.MULTI_SELECT, ["A", "B", "A"], ["A", "B"]),
        (FieldKind.MULTI_SELECT, "Solo", ["Solo"]),
    ],
)
def test_encode_decode(validator, kind, raw, expected):
    payload = validator.encode(kind, raw)
    assert set(payload) == {"value"}
    assert validator.decode(kind, payload) == expected


def test_number_stored_as_decimal_string(validator):
    assert validator.encode(FieldKind.CURRENCY, 1234.5) == {"value": "1234.5"}
    assert validator.encode(FieldKind.NUMBER, Decimal("0.10")) == {"value": "0.10"}


def test_date_stored_as_iso_string(validator):
    assert validator.encode(FieldKind.DATE, date(2024, 3, 9)) == {"value": "2024-03-09"}


@pytest.mark.parametrize(
    "kind,raw",
    [
        (FieldKind.TEXT, ""),
        (FieldKind.TEXT, "   "),
        (FieldKind.NUMBER, None),
        (FieldKind.NUMBER, ""),
        (FieldKind.DATE, None),
        (FieldKind.DROPDOWN, ""),
        (FieldKind.MULTI_SELECT, []),
        (FieldKind.CHECKBOX, None),
    ],
)
def test_empty_values_are_not_stored(validator, kind, raw):
    assert validator.encode(kind, raw) is None


def test_checkbox_false_is_stored(validator):
    assert validator.encode(FieldKind.CHECKBOX, False) == {"value": False}


def test_encode_unknown_kind_raises(validator):
    with pytest.raises(ValueError):
        validator.encode("rating", 5)


# =============================================================================
# Defensive decode
# =============================================================================


@pytest.mark.parametrize(
    "kind,payload,expected",
    [
        (FieldKind.NUMBER, {"value": "not a number"}, None),
        (FieldKind.NUMBER, {"value": ["1"]}, None),
        (FieldKind.DATE, {"value": "2024-13-45"}, None),
        (FieldKind.DATE, {"value": 20240105}, None),
        (FieldKind.CHECKBOX, {"value": "maybe"}, False),
        (FieldKind.TEXT, {"value": {"nested": True}}, ""),
        (FieldKind.DROPDOWN, {"value": ["A", "B"]}, ""),
        (FieldKind.MULTI_SELECT, {"value": 7}, []),
        (FieldKind.MULTI_SELECT, None, []),
        (FieldKind.CURRENCY, "garbage", None),
    ],
)
def test_decode_malformed_returns_empty(validator, kind, payload, expected):
    assert validator.decode(kind, payload) == expected


EMPTY_BY_KIND = {
    FieldKind.TEXT: "",
    FieldKind.TEXTAREA: "",
    FieldKind.EMAIL: "",
    FieldKind.PHONE: "",
    FieldKind.URL: "",
    FieldKind.NUMBER: None,
    FieldKind.CURRENCY: None,
    FieldKind.DATE: None,
    FieldKind.CHECKBOX: False,
    FieldKind.DROPDOWN: "",
    FieldKind.MULTI_SELECT: [],
}


def test_empty_by_kind_covers_every_kind():
    assert set(EMPTY_BY_KIND) == set(FieldKind)


@pytest.mark.parametrize("kind", list(FieldKind))
@pytest.mark.parametrize(
    "payload",
    [None, {}, {"other": "x"}, {"value": None}, {"value": {"nested": True}}, {"value": [1, 2]}],
)
def test_every_kind_decodes_malformed_to_empty(validator, kind, payload):
    assert validator.decode(kind, payload) == EMPTY_BY_KIND[kind]


def test_numbers_are_stored_in_plain_notation(validator):
    assert validator.encode(FieldKind.NUMBER, Decimal("1E-7")) == {"value": "0.0000001"}
    assert validator.encode(FieldKind.CURRENCY, Decimal("5E+3")) == {"value": "5000"}
    assert validator.decode(FieldKind.CURRENCY, {"value": "5000"}) == Decimal("5000")


def test_oversized_stored_number_decodes_to_empty(validator):
    # Written before magnitude limits existed
    assert validator.decode(FieldKind.CURRENCY, {"value": "1E+999999999"}) is None
    assert validator.decode(FieldKind.NUMBER, {"value": "9" * 40}) is None


def test_decode_after_kind_change(validator):
    # A value written as text, read back after the field became a number
    stored = validator.encode(FieldKind.TEXT, "about five")
    assert validator.decode(FieldKind.NUMBER, stored) is None


def test_decode_unknown_kind_returns_none(validator):
    assert validator.decode("rating", {"value": 5}) is None


def test_dropdown_decodes_single_item_list(validator):
    assert validator.decode(FieldKind.DROPDOWN, {"value": ["Gold"]}) == "Gold"


def test_multi_select_drops_non_string_items(validator):
    assert validator.decode(FieldKind.MULTI_SELECT, {"value": ["A", 3, None, "", "A", "B"]}) == ["A", "B"]


# =============================================================================
# Validation
# =============================================================================


def test_required_field_missing(validator):
    field = definition(FieldKind.TEXT, name="Company", is_required=True)
    issues = validator.validate(field, "  ")
    assert len(issues) == 1
    assert isinstance(issues[0], RequiredFieldMissing)
    assert issues[0].message == "Company is required"


@pytest.mark.parametrize(
    "kind,raw",
    [
        (FieldKind.NUMBER, None),
        (FieldKind.CURRENCY, ""),
        (FieldKind.DATE, ""),
        (FieldKind.DROPDOWN, None),
        (FieldKind.MULTI_SELECT, []),
        (FieldKind.CHECKBOX, None),
    ],
)
def test_required_empty_per_kind(validator, kind, raw):
    field = definition(kind, is_required=True)
    assert [type(issue) for issue in validator.validate(field, raw)] == [RequiredFieldMissing]


def test_required_checkbox_accepts_explicit_false(validator):
    field = definition(FieldKind.CHECKBOX, name="Accredited", is_required=True)
    assert validator.validate(field, False) == []


def test_optional_empty_value_passes(validator):
    assert validator.validate(definition(FieldKind.NUMBER), None) == []


@pytest.mark.parametrize(
    "kind,raw",
    [
        (FieldKind.NUMBER, "12abc"),
        (FieldKind.NUMBER, True),
        (FieldKind.NUMBER, float("nan")),
        (FieldKind.CURRENCY, "$5"),
        (FieldKind.DATE, "next tuesday"),
        (FieldKind.CHECKBOX, "perhaps"),
        (FieldKind.DROPDOWN, ["A", "B"]),
        (FieldKind.MULTI_SELECT, {"a": 1}),
        (FieldKind.EMAIL, "not-an-email"),
        (FieldKind.URL, "not a url"),
        (FieldKind.URL, "http://[abc"),
        (FieldKind.EMAIL, "a@b"),
        (FieldKind.EMAIL, "two@@example.com"),
        (FieldKind.NUMBER, "1e999999999"),
        (FieldKind.CURRENCY, "1E+5"),
        (FieldKind.CURRENCY, "1" + "0" * 15),
        (FieldKind.NUMBER, 1e300),
        (FieldKind.NUMBER, Decimal("1E-999999")),
        (FieldKind.PHONE, "12"),
        (FieldKind.TEXT, {"x": 1}),
    ],
)
def test_invalid_values(validator, kind, raw):
    issues = validator.validate(definition(kind, name="Thing"), raw)
    assert len(issues) == 1
    assert isinstance(issues[0], InvalidFieldValue)
    assert issues[0].as_dict()["code"] == "invalid_value"


def test_choice_values_outside_options_are_accepted(validator):
    field = definition(FieldKind.DROPDOWN, options=["Gold"])
    assert validator.validate(field, "Platinum") == []
    assert validator.new_options(field, "Platinum") == ["Platinum"]
    assert validator.new_options(field, "Gold") == []


def test_new_options_for_multi_select(validator):
    field = definition(FieldKind.MULTI_SELECT, options=["A"])
    assert validator.new_options(field, ["A", "B", "C"]) == ["B", "C"]


def test_new_options_ignored_for_non_choice(validator):
    assert validator.new_options(definition(FieldKind.TEXT), "Gold") == []


def test_url_without_scheme_is_valid(validator):
    assert validator.validate(definition(FieldKind.URL), "example.com") == []


def test_validate_values_collects_all_issues(validator):
    required = definition(FieldKind.TEXT, name="Company", is_required=True)
    number = definition(FieldKind.NUMBER, name="Units")
    ok = definition(FieldKind.DROPDOWN, name="Tier")
    stray = uuid.uuid4()

    result = validator.validate_values(
        [required, number, ok],
        {number.id: "lots", ok.id: "Gold", stray: "x"},
    )

    assert not result.ok
    kinds = {type(issue) for issue in result.issues}
    assert kinds == {RequiredFieldMissing, InvalidFieldValue, UnknownField}
    errors = result.errors_by_field()
    assert errors[str(required.id)][0]["code"] == "required_field_missing"
    assert errors[str(number.id)][0]["code"] == "invalid_value"
    assert errors[str(stray)][0]["code"] == "unknown_field"
    assert result.values[ok.id] == "Gold"


def test_validate_values_coerces(validator):
    amount = definition(FieldKind.CURRENCY)
    flag = definition(FieldKind.CHECKBOX)
    result = validator.validate_values([amount, flag], {amount.id: "10.50"})
    assert result.ok
    assert result.values == {amount.id: Decimal("10.50"), flag.id: False}


def test_unknown_kind_definition_with_empty_value_passes(validator):
    field = definition("rating", is_required=True)
    assert validator.validate(field, None) == []
    assert len(validator.validate(field, 4)) == 1


# =============================================================================
# Defaults and display
# =============================================================================


def test_default_for_uses_decode_path(validator):
    assert validator.default_for(definition(FieldKind.NUMBER, default_value="7")) == Decimal("7")
    assert validator.default_for(definition(FieldKind.CHECKBOX, default_value="true")) is True
    assert validator.default_for(definition(FieldKind.NUMBER, default_value="abc")) is None
    assert validator.default_for(definition(FieldKind.TEXT)) == ""


def test_default_for_multi_select_splits_commas(validator):
    field = definition(FieldKind.MULTI_SELECT, default_value="A, B,,A")
    assert validator.default_for(field) == ["A", "B"]


@pytest.mark.parametrize(
    "kind,value,expected",
    [
        (FieldKind.CURRENCY, Decimal("1234.5"), "$1,234.50"),
        (FieldKind.CURRENCY, Decimal("-5"), "-$5.00"),
        (FieldKind.CURRENCY, Decimal("-1234.567"), "-$1,234.57"),
        (FieldKind.NUMBER, Decimal("-1234.5"), "-1,234.5"),
        (FieldKind.CURRENCY, None, ""),
        (FieldKind.NUMBER, Decimal("1234567"), "1,234,567"),
        (FieldKind.DATE, date(2024, 1, 5), "Jan 5, 2024"),
        (FieldKind.CHECKBOX, True, "Yes"),
        (FieldKind.CHECKBOX, False, "No"),
        (FieldKind.MULTI_SELECT, ["A", "B"], "A, B"),
        (FieldKind.TEXT, "", ""),
        (FieldKind.DROPDOWN, "Gold", "Gold"),
    ],
)
def test_format_for_display(validator, kind, value, expected):
    assert validator.format_for_display(kind, value) == expected


def test_dedupe_options_keeps_first_occurrence():
    assert dedupe_options(["b", "a", "b", "A"]) == ["b", "a", "A"]
