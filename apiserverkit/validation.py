"""Name and label validation helpers shared by the API server packages."""

from __future__ import annotations

import json
import re

_NAME_MAY_NOT_BE = (".", "..")
_NAME_MAY_NOT_CONTAIN = ("/", "%")

_QNAME_CHAR_FMT = "[A-Za-z0-9]"
_QNAME_EXT_CHAR_FMT = "[-A-Za-z0-9_.]"
_QUALIFIED_NAME_FMT = f"({_QNAME_CHAR_FMT}{_QNAME_EXT_CHAR_FMT}*)?{_QNAME_CHAR_FMT}"
_QUALIFIED_NAME_RE = re.compile(_QUALIFIED_NAME_FMT)
_QUALIFIED_NAME_MAX_LENGTH = 63
_QUALIFIED_NAME_ERR_MSG = (
    "must consist of alphanumeric characters, '-', '_' or '.', "
    "and must start and end with an alphanumeric character"
)

_LABEL_VALUE_FMT = f"({_QUALIFIED_NAME_FMT})?"
_LABEL_VALUE_RE = re.compile(_LABEL_VALUE_FMT)
_LABEL_VALUE_MAX_LENGTH = 63
_LABEL_VALUE_ERR_MSG = (
    "a valid label must be an empty string or consist of alphanumeric characters, "
    "'-', '_' or '.', and must start and end with an alphanumeric character"
)

_DNS1123_LABEL_FMT = "[a-z0-9]([-a-z0-9]*[a-z0-9])?"
_DNS1123_SUBDOMAIN_FMT = f"{_DNS1123_LABEL_FMT}(\\.{_DNS1123_LABEL_FMT})*"
_DNS1123_SUBDOMAIN_RE = re.compile(_DNS1123_SUBDOMAIN_FMT)
_DNS1123_SUBDOMAIN_MAX_LENGTH = 253
_DNS1123_SUBDOMAIN_ERR_MSG = (
    "a lowercase RFC 1123 subdomain must consist of lower case alphanumeric "
    "characters, '-' or '.', and must start and end with an alphanumeric character"
)


class FieldError(ValueError):
    """An invalid value found at a field path."""

    def __init__(self, path: str, value: object, detail: str) -> None:
        self.path = path
        self.value = value
        self.detail = detail
        shown = json.dumps(value) if isinstance(value, str) else repr(value)
        super().__init__(f"{path}: Invalid value: {shown}: {detail}")


def _empty_error() -> str:
    return "must be non-empty"


def _max_len_error(length: int) -> str:
    return f"must be no more than {length} characters"


def _regex_error(message: str, fmt: str, *examples: str) -> str:
    if not examples:
        return f"{message} (regex used for validation is '{fmt}')"
    shown = ",  or ".join(f"'{example}'" for example in examples)
    return f"{message} (e.g. {shown}, regex used for validation is '{fmt}')"


def _is_dns1123_subdomain(value: str) -> list[str]:
    errors = []
    if len(value) > _DNS1123_SUBDOMAIN_MAX_LENGTH:
        errors.append(_max_len_error(_DNS1123_SUBDOMAIN_MAX_LENGTH))
    if not _DNS1123_SUBDOMAIN_RE.fullmatch(value):
        errors.append(
            _regex_error(_DNS1123_SUBDOMAIN_ERR_MSG, _DNS1123_SUBDOMAIN_FMT, "example.com")
        )
    return errors


def validate_path_segment_name(name: str, prefix: bool) -> list[str]:
    """Return the reasons `name` cannot be used as a path segment (empty if valid)."""
    if not prefix:
        for illegal in _NAME_MAY_NOT_BE:
            if name == illegal:
                return [f"may not be '{illegal}'"]
    return [f"may not contain '{illegal}'" for illegal in _NAME_MAY_NOT_CONTAIN if illegal in name]


def is_qualified_name(value: str) -> list[str]:
    """Return the reasons `value` is not a qualified name (empty if valid)."""
    errors: list[str] = []
    parts = value.split("/")
    if len(parts) == 1:
        name = parts[0]
    elif len(parts) == 2:
        prefix, name = parts
        if not prefix:
            errors.append("prefix part " + _empty_error())
        else:
            errors.extend("prefix part " + msg for msg in _is_dns1123_subdomain(prefix))
    else:
        return [
            "a qualified name "
            + _regex_error(
                _QUALIFIED_NAME_ERR_MSG, _QUALIFIED_NAME_FMT, "MyName", "my.name", "123-abc"
            )
            + " with an optional DNS subdomain prefix and '/' (e.g. 'example.com/MyName')"
        ]

    if not name:
        errors.append("name part " + _empty_error())
    elif len(name) > _QUALIFIED_NAME_MAX_LENGTH:
        errors.append("name part " + _max_len_error(_QUALIFIED_NAME_MAX_LENGTH))
    if not _QUALIFIED_NAME_RE.fullmatch(name):
        errors.append(
            "name part "
            + _regex_error(
                _QUALIFIED_NAME_ERR_MSG, _QUALIFIED_NAME_FMT, "MyName", "my.name", "123-abc"
            )
        )
    return errors


def is_valid_label_value(value: str) -> list[str]:
    """Return the reasons `value` is not a valid label value (empty if valid)."""
    errors = []
    if len(value) > _LABEL_VALUE_MAX_LENGTH:
        errors.append(_max_len_error(_LABEL_VALUE_MAX_LENGTH))
    if not _LABEL_VALUE_RE.fullmatch(value):
        errors.append(
            _regex_error(_LABEL_VALUE_ERR_MSG, _LABEL_VALUE_FMT, "MyValue", "my_value", "12345")
        )
    return errors


def validate_user_name(name: str, prefix: bool) -> list[str]:
    """Return the reasons `name` is not an acceptable user name (empty if valid)."""
    reasons = validate_path_segment_name(name, False)
    if reasons:
        return reasons
    if ":" in name and not name.startswith("b64:"):
        return ['usernames that contain ":" must begin with "b64:"']
    if name == "~":
        return ['may not equal "~"']
    return []


def validate_group_name(name: str, prefix: bool) -> list[str]:
    """Return the reasons `name` is not an acceptable group name (empty if valid)."""
    reasons = validate_path_segment_name(name, False)
    if reasons:
        return reasons
    if ":" in name:
        return ['may not contain ":"']
    if name == "~":
        return ['may not equal "~"']
    return []