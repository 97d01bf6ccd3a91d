"""Custom field enums."""

from enum import Enum


class FieldKind(str, Enum):
    """Data kinds a custom field definition can declare."""

    TEXT = "text"
    TEXTAREA = "textarea"
    NUMBER = "number"
    CURRENCY = "currency"
    DATE = "date"
    DROPDOWN = "dropdown"
    MULTI_SELECT = "multi_select"
    CHECKBOX = "checkbox"
    URL = "url"
    EMAIL = "email"
    PHONE = "phone"

    @property
    def is_choice(self) -> bool:
        return self in CHOICE_FIELD_KINDS


CHOICE_FIELD_KINDS = frozenset({FieldKind.DROPDOWN, FieldKind.MULTI_SELECT})
