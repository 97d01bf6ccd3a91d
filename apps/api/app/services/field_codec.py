"""Encode, decode and validate custom field values.

Every field kind maps to a FieldCodec that knows three representations:

- raw: whatever the caller submitted (form/JSON input)
- semantic: the Python value the rest of the app works with
  (str, Decimal | None, date | None, bool, list[str])
- stored: the JSON payload kept in CustomFieldValue.value_json,
  always shaped as {"value": <json>}

Decoding never raises. Stored data written under another kind (the field
kind changed after values existed) or by older code decodes to the kind's
empty value instead.
"""

from __future__ import annotations

import logging
import math
import re
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Any, ClassVar, Iterable, Mapping
from urllib.parse import urlparse
from uuid import UUID

from pydantic import EmailStr, TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from app.db.enums import FieldKind

logger = logging.getLogger(__name__)

PAYLOAD_KEY = "value"

DECIMAL_PATTERN = re.compile(r"^[+-]?(\d+(\.\d*)?|\.\d+)$")
# Largest accepted magnitude is below 10**MAX_NUMBER_DIGITS
MAX_NUMBER_DIGITS = 15
MAX_DECIMAL_PLACES = 20
PHONE_PATTERN = re.compile(r"^\+?[0-9().\-\s]+(\s*(x|ext\.?)\s*\d+)?$", re.IGNORECASE)
PHONE_MIN_DIGITS = 7
EMAIL_ADAPTER = TypeAdapter(EmailStr)

TRUE_STRINGS = {"true", "1", "yes", "y", "on"}
FALSE_STRINGS = {"false", "0", "no", "n", "off"}


# =============================================================================
# Validation results
# =============================================================================


@dataclass(frozen=True)
class FieldIssue:
    """A single problem with a submitted value."""

    field_id: UUID | None
    field_name: str
    message: str

    code: ClassVar[str] = "invalid"

    def as_dict(self) -> dict[str, Any]:
        return {"code": self.code, "message": self.message}


@dataclass(frozen=True)
class RequiredFieldMissing(FieldIssue):
    code: ClassVar[str] = "required_field_missing"


@dataclass(frozen=True)
class InvalidFieldValue(FieldIssue):
    code: ClassVar[str] = "invalid_value"


@dataclass(frozen=True)
class UnknownField(FieldIssue):
    code: ClassVar[str] = "unknown_field"


@dataclass
class ValidationResult:
    """Outcome of validating a set of submitted values."""

    issues: list[FieldIssue] = field(default_factory=list)
    values: dict[UUID, Any] = field(default_factory=dict)  # field_id -> semantic value

    @property
    def ok(self) -> bool:
        return not self.issues

    def errors_by_field(self) -> dict[str, list[dict[str, Any]]]:
        """Field-keyed error map for API responses."""
        errors: dict[str, list[dict[str, Any]]] = {}
        for issue in self.issues:
            key = str(issue.field_id) if issue.field_id else issue.field_name
            errors.setdefault(key, []).append(issue.as_dict())
        return errors


# =============================================================================
# Codecs
# =============================================================================


class FieldCodec:
    """
    Base codec. Subclasses implement parse/decode_value/encode_value.

    parse() raises ValueError for input it cannot interpret; everything
    else on the codec is total.
    """

    empty: ClassVar[Any] = None

    def empty_value(self) -> Any:
        return self.empty

    def parse(self, raw: Any) -> Any:
        raise NotImplementedError

    def coerce(self, raw: Any) -> Any:
        """Parse raw input, falling back to the empty value."""
        try:
            return self.parse(raw)
        except (TypeError, ValueError, ArithmeticError):
            return self.empty_value()

    def is_empty(self, value: Any) -> bool:
        return value is None or value == "" or value == []

    def encode_value(self, value: Any) -> Any:
        return value

    def decode_value(self, stored: Any) -> Any:
        raise NotImplementedError

    def shape_error(self, value: Any) -> str | None:
        """Message when a parsed, non-empty value has the wrong shape."""
        return None

    def format(self, value: Any) -> str:
        if self.is_empty(value):
            return ""
        return str(value)


class TextCodec(FieldCodec):
    empty = ""

    def parse(self, raw: Any) -> str:
        if raw is None:
            return ""
        if isinstance(raw, str):
            return raw
        if isinstance(raw, bool):
            raise ValueError("Expected text")
        if isinstance(raw, (int, float, Decimal)):
            return str(raw)
        raise ValueError("Expected text")

    def is_empty(self, value: Any) -> bool:
        return value is None or (isinstance(value, str) and not value.strip())

    def decode_value(self, stored: Any) -> str:
        if isinstance(stored, str):
            return stored
        return ""


class EmailCodec(TextCodec):
    def shape_error(self, value: str) -> str | None:
        try:
            EMAIL_ADAPTER.validate_python(value.strip())
        except PydanticValidationError:
            return "must be a valid email address"
        return None


class UrlCodec(TextCodec):
    def shape_error(self, value: str) -> str | None:
        candidate = value.strip()
        if "://" not in candidate:
            candidate = f"https://{candidate}"
        try:
            parsed = urlparse(candidate)
        except ValueError:
            # Unbalanced IPv6 brackets, e.g. "http://[abc"
            return "must be a valid URL"
        if parsed.scheme not in ("http", "https") or "." not in parsed.netloc:
            return "must be a valid URL"
        return None


class PhoneCodec(TextCodec):
    def shape_error(self, value: str) -> str | None:
        candidate = value.strip()
        digits = sum(ch.isdigit() for ch in candidate)
        if not PHONE_PATTERN.match(candidate) or digits < PHONE_MIN_DIGITS:
            return "must be a valid phone number"
        return None


class NumberCodec(FieldCodec):
    """number and currency: Decimal semantic value, decimal string on disk."""

    empty = None

    def __init__(self, currency: bool = False):
        self.currency = currency

    def parse(self, raw: Any) -> Decimal | None:
        if raw is None:
            return None
        if isinstance(raw, bool):
            raise ValueError("Expected a number")
        if isinstance(raw, Decimal):
            value = raw
        elif isinstance(raw, int):
            value = Decimal(raw)
        elif isinstance(raw, float):
            if not math.isfinite(raw):
                raise ValueError("Expected a finite number")
            # str() keeps the shortest repr (12.5 -> "12.5"), not the binary expansion
            value = Decimal(str(raw))
        elif isinstance(raw, str):
            text = raw.strip()
            if not text:
                return None
            if not DECIMAL_PATTERN.match(text):
                raise ValueError("Expected a number")
            value = Decimal(text)
        else:
            raise ValueError("Expected a number")
        if not value.is_finite():
            raise ValueError("Expected a finite number")
        if value and value.adjusted() >= MAX_NUMBER_DIGITS:
            raise ValueError(f"Expected at most {MAX_NUMBER_DIGITS} digits before the decimal point")
        if value.as_tuple().exponent < -MAX_DECIMAL_PLACES:
            raise ValueError(f"Expected at most {MAX_DECIMAL_PLACES} decimal places")
        return value

    def encode_value(self, value: Decimal) -> str:
        # Plain notation so stored strings parse back through DECIMAL_PATTERN
        return format(value, "f")

    def decode_value(self, stored: Any) -> Decimal | None:
        try:
            return self.parse(stored)
        except (TypeError, ValueError, InvalidOperation):
            return None

    def format(self, value: Any) -> str:
        if value is None:
            return ""
        if not isinstance(value, Decimal):
            value = Decimal(str(value))
        if self.currency:
            sign = "-" if value < 0 else ""
            return f"{sign}${abs(value):,.2f}"
        return f"{value:,f}"


class DateCodec(FieldCodec):
    """Calendar dates stored as ISO YYYY-MM-DD."""

    empty = None

    def parse(self, raw: Any) -> date | None:
        if raw is None:
            return None
        if isinstance(raw, datetime):
            return raw.date()
        if isinstance(raw, date):
            return raw
        if not isinstance(raw, str):
            raise ValueError("Expected a date")
        text = raw.strip()
        if not text:
            return None
        try:
            return date.fromisoformat(text)
        except ValueError:
            # Full timestamps (e.g. "2024-01-05T00:00:00Z") keep their calendar date
            return datetime.fromisoformat(text.replace("Z", "+00:00")).date()

    def encode_value(self, value: date) -> str:
        return value.isoformat()

    def decode_value(self, stored: Any) -> date | None:
        if not isinstance(stored, str):
            return None
        try:
            return self.parse(stored)
        except ValueError:
            return None

    def format(self, value: Any) -> str:
        if value is None:
            return ""
        return f"{value:%b} {value.day}, {value.year}"


class CheckboxCodec(FieldCodec):
    """
    Booleans. parse() keeps None for "not answered" so required checks can
    tell absence from an explicit False; the semantic empty value is False.
    """

    empty = False

    def parse(self, raw: Any) -> bool | None:
        if raw is None:
            return None
        if isinstance(raw, bool):
            return raw
        if isinstance(raw, int) and raw in (0, 1):
            return bool(raw)
        if isinstance(raw, str):
            text = raw.strip().lower()
            if not text:
                return None
            if text in TRUE_STRINGS:
                return True
            if text in FALSE_STRINGS:
                return False
        raise ValueError("Expected true or false")

    def coerce(self, raw: Any) -> bool:
        parsed = super().coerce(raw)
        return bool(parsed)

    def is_empty(self, value: Any) -> bool:
        return value is None

    def decode_value(self, stored: Any) -> bool:
        if isinstance(stored, bool):
            return stored
        return False

    def format(self, value: Any) -> str:
        return "Yes" if value else "No"


class DropdownCodec(FieldCodec):
    empty = ""

    def parse(self, raw: Any) -> str:
        if raw is None:
            return ""
        if isinstance(raw, (list, tuple)):
            items = [item for item in raw if item not in (None, "")]
            if len(items) > 1:
                raise ValueError("Only one option can be selected")
            raw = items[0] if items else ""
        if isinstance(raw, bool):
            raise ValueError("Expected an option")
        if isinstance(raw, (int, float, Decimal)):
            return str(raw)
        if not isinstance(raw, str):
            raise ValueError("Expected an option")
        return raw.strip()

    def decode_value(self, stored: Any) -> str:
        if isinstance(stored, str):
            return stored
        if isinstance(stored, list) and len(stored) == 1 and isinstance(stored[0], str):
            return stored[0]
        return ""

    def selected(self, value: str) -> list[str]:
        return [value] if value else []


class MultiSelectCodec(FieldCodec):
    """Ordered, de-duplicated option lists. A bare scalar is a one-item list."""

    empty: ClassVar[list] = []

    def empty_value(self) -> list[str]:
        return []

    def parse(self, raw: Any) -> list[str]:
        if raw is None:
            return []
        if isinstance(raw, str):
            raw = [raw]
        if not isinstance(raw, (list, tuple)):
            raise ValueError("Expected a list of options")
        items: list[str] = []
        for item in raw:
            if item is None:
                continue
            if isinstance(item, bool) or not isinstance(item, (str, int, float, Decimal)):
                raise ValueError("Options must be text")
            text = str(item).strip()
            if text:
                items.append(text)
        return dedupe_options(items)

    def decode_value(self, stored: Any) -> list[str]:
        if isinstance(stored, str):
            return [stored] if stored else []
        if not isinstance(stored, list):
            return []
        return dedupe_options(item for item in stored if isinstance(item, str) and item)

    def encode_value(self, value: list[str]) -> list[str]:
        return list(value)

    def selected(self, value: list[str]) -> list[str]:
        return list(value)

    def format(self, value: Any) -> str:
        return ", ".join(value or [])


def dedupe_options(options: Iterable[str]) -> list[str]:
    """Drop repeated options, keeping first-occurrence order (exact match)."""
    return list(dict.fromkeys(options))


# =============================================================================
# Registry
# =============================================================================


class CodecRegistry:
    """Explicit FieldKind -> FieldCodec table; refuses to build with gaps."""

    def __init__(self, codecs: Mapping[FieldKind, FieldCodec]):
        missing = [kind.value for kind in FieldKind if kind not in codecs]
        if missing:
            raise RuntimeError(f"No codec registered for field kinds: {', '.join(missing)}")
        self._codecs = dict(codecs)

    def get(self, kind: FieldKind | str) -> FieldCodec:
        return self._codecs[FieldKind(kind)]

    def __contains__(self, kind: object) -> bool:
        try:
            return FieldKind(kind) in self._codecs
        except ValueError:
            return False


def build_default_registry() -> CodecRegistry:
    text = TextCodec()
    return CodecRegistry(
        {
            FieldKind.TEXT: text,
            FieldKind.TEXTAREA: text,
            FieldKind.EMAIL: EmailCodec(),
            FieldKind.PHONE: PhoneCodec(),
            FieldKind.URL: UrlCodec(),
            FieldKind.NUMBER: NumberCodec(),
            FieldKind.CURRENCY: NumberCodec(currency=True),
            FieldKind.DATE: DateCodec(),
            FieldKind.CHECKBOX: CheckboxCodec(),
            FieldKind.DROPDOWN: DropdownCodec(),
            FieldKind.MULTI_SELECT: MultiSelectCodec(),
        }
    )


# =============================================================================
# Validator
# =============================================================================


class FieldValueValidator:
    """
    Kind-aware encode/decode/validate over a CodecRegistry.

    Definitions are duck-typed: anything with id, name, field_kind,
    is_required, default_value and options works (ORM rows in practice).
    """

    def __init__(self, registry: CodecRegistry):
        self.registry = registry

    def _codec(self, kind: FieldKind | str) -> FieldCodec | None:
        if kind not in self.registry:
            return None
        return self.registry.get(kind)

    def empty_value(self, kind: FieldKind | str) -> Any:
        codec = self._codec(kind)
        return codec.empty_value() if codec else None

    def coerce(self, kind: FieldKind | str, raw: Any) -> Any:
        codec = self._codec(kind)
        if codec is None:
            return None
        return codec.coerce(raw)

    def encode(self, kind: FieldKind | str, value: Any) -> dict[str, Any] | None:
        """Stored payload for a value, or None when there is nothing to store."""
        codec = self._codec(kind)
        if codec is None:
            raise ValueError(f"Unknown field kind: {kind}")
        try:
            parsed = codec.parse(value)
        except (TypeError, ValueError, ArithmeticError):
            return None
        if codec.is_empty(parsed):
            return None
        return {PAYLOAD_KEY: codec.encode_value(parsed)}

    def decode(self, kind: FieldKind | str, payload: Any) -> Any:
        """Semantic value for a stored payload. Never raises."""
        codec = self._codec(kind)
        if codec is None:
            logger.warning("Cannot decode value for unknown field kind %r", kind)
            return None
        stored = payload.get(PAYLOAD_KEY) if isinstance(payload, dict) else payload
        try:
            return codec.decode_value(stored)
        except (TypeError, ValueError, ArithmeticError):
            return codec.empty_value()

    def default_for(self, definition: Any) -> Any:
        """Default semantic value, decoded through the stored-value path."""
        kind = definition.field_kind
        default = definition.default_value
        if default is None or default == "":
            return self.empty_value(kind)
        codec = self._codec(kind)
        if isinstance(codec, MultiSelectCodec) and isinstance(default, str) and "," in default:
            # Defaults are stored as text; multi-select defaults are comma separated
            default = [part.strip() for part in default.split(",") if part.strip()]
        return self.decode(kind, self.encode(kind, default))

    def format_for_display(self, kind: FieldKind | str, value: Any) -> str:
        codec = self._codec(kind)
        if codec is None:
            return ""
        return codec.format(value)

    def selected_options(self, kind: FieldKind | str, value: Any) -> list[str]:
        """Options referenced by a choice value ([] for other kinds)."""
        codec = self._codec(kind)
        if isinstance(codec, (DropdownCodec, MultiSelectCodec)):
            return codec.selected(value)
        return []

    def new_options(self, definition: Any, value: Any) -> list[str]:
        """Choice values not yet present in the definition's options."""
        existing = set(definition.options or [])
        return [opt for opt in self.selected_options(definition.field_kind, value) if opt not in existing]

    def validate(self, definition: Any, raw: Any) -> list[FieldIssue]:
        """
        Check one submitted value against its definition.

        Choice values outside the option list are accepted; callers grow
        the option list instead of rejecting them.
        """
        codec = self._codec(definition.field_kind)
        if codec is None:
            if raw is None or raw == "":
                return []
            return [
                InvalidFieldValue(
                    field_id=definition.id,
                    field_name=definition.name,
                    message=f"{definition.name} has an unsupported field type",
                )
            ]

        try:
            parsed = codec.parse(raw)
        except (TypeError, ValueError, ArithmeticError) as exc:
            return [
                InvalidFieldValue(
                    field_id=definition.id,
                    field_name=definition.name,
                    message=f"{definition.name}: {exc}",
                )
            ]

        if codec.is_empty(parsed):
            if definition.is_required:
                return [
                    RequiredFieldMissing(
                        field_id=definition.id,
                        field_name=definition.name,
                        message=f"{definition.name} is required",
                    )
                ]
            return []

        shape_error = codec.shape_error(parsed)
        if shape_error:
            return [
                InvalidFieldValue(
                    field_id=definition.id,
                    field_name=definition.name,
                    message=f"{definition.name} {shape_error}",
                )
            ]
        return []

    def validate_values(self, definitions: Iterable[Any], raw_values: Mapping[UUID, Any]) -> ValidationResult:
        """
        Validate a full submission against the union of definitions.

        Definitions missing from raw_values are validated as absent, so
        required fields must be present in every save.
        """
        result = ValidationResult()
        by_id = {definition.id: definition for definition in definitions}

        for field_id in raw_values:
            if field_id not in by_id:
                result.issues.append(
                    UnknownField(
                        field_id=field_id,
                        field_name=str(field_id),
                        message="Field is not defined for this entity's types",
                    )
                )

        for field_id, definition in by_id.items():
            raw = raw_values.get(field_id)
            issues = self.validate(definition, raw)
            if issues:
                result.issues.extend(issues)
                continue
            result.values[field_id] = self.coerce(definition.field_kind, raw)
        return result


def get_default_validator() -> FieldValueValidator:
    return FieldValueValidator(build_default_registry())
