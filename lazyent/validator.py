"""Rendering of proto field validation options (PGV and ProtoValidate)."""

from __future__ import annotations

import copy
from typing import Iterable, List, Optional

from lazyent.helpers import get_field_annotation, get_proto_type, is_external_enum
from lazyent.schema import Field
from lazyent.types import (
    EnumRules,
    NumberRules,
    ProtoValidator,
    RepeatedRules,
    StringRules,
    ValidationRules,
)

_SIMPLE_ESCAPES = {
    "\a": "\\a",
    "\b": "\\b",
    "\f": "\\f",
    "\n": "\\n",
    "\r": "\\r",
    "\t": "\\t",
    "\v": "\\v",
    "\\": "\\\\",
    '"': '\\"',
}


def _quote(s: str) -> str:
    """Double-quote a string with backslash escapes for non-printable characters."""
    out = []
    for ch in s:
        if ch in _SIMPLE_ESCAPES:
            out.append(_SIMPLE_ESCAPES[ch])
        elif ch.isprintable():
            out.append(ch)
        else:
            code = ord(ch)
            if code < 0x80:
                out.append(f"\\x{code:02x}")
            elif code <= 0xFFFF:
                out.append(f"\\u{code:04x}")
            else:
                out.append(f"\\U{code:08x}")
    return '"' + "".join(out) + '"'


def _list(items: Iterable[str]) -> str:
    return "[" + ", ".join(items) + "]"


def get_validate_rules(field: Field, node_name: str, validator: ProtoValidator) -> str:
    """Validation option text for a proto field, or an empty string."""
    validator = ProtoValidator(validator)
    if validator == ProtoValidator.NO_VALIDATOR:
        return ""

    a = get_field_annotation(field)
    if a is not None and a.validation is not None:
        rules = copy.deepcopy(a.validation)
    else:
        rules = ValidationRules()

    if field.is_enum() and not is_external_enum(field):
        if rules.enum is None:
            rules.enum = EnumRules()
        rules.enum.defined_only = True

    if field.type == "uuid.UUID":
        if rules.string is None:
            rules.string = StringRules()
        rules.string.uuid = True

    p_type = get_proto_type(field)

    if not is_validation_empty(rules):
        return render_validation_rules(rules, validator, p_type)

    if a is not None and a.proto_validation:
        val = a.proto_validation
        val = val.replace(":", ": ")
        val = val.replace(",", ", ")
        val = val.replace(":  ", ": ")
        val = val.replace(",  ", ", ")

        if validator == ProtoValidator.PROTO_VALIDATE and val.startswith("."):
            val = val[1:]

        if val.startswith("."):
            return val
        if val.startswith("repeated") and ("items:" in val or "items :" in val):
            return f".repeated = {{ {val} }}"
        return f".{p_type} = {{ {val} }}"

    return ""


def is_validation_empty(rules: Optional[ValidationRules]) -> bool:
    """Whether no rule group is set."""
    if rules is None:
        return True
    return (
        rules.string is None
        and rules.number is None
        and rules.repeated is None
        and rules.enum is None
    )


def render_validation_rules(
    rules: ValidationRules, validator: ProtoValidator, proto_type: str
) -> str:
    """Render all rule groups in the syntax of the chosen validator."""
    parts: List[str] = []
    if rules.string is not None:
        parts.append(render_string_rules(rules.string))
    if rules.number is not None:
        parts.append(render_number_rules(rules.number, proto_type))
    if rules.repeated is not None:
        parts.append(render_repeated_rules(rules.repeated))
    if rules.enum is not None:
        parts.append(render_enum_rules(rules.enum))

    body = ", ".join(parts)
    if body == "":
        return ""

    if ProtoValidator(validator) == ProtoValidator.PROTO_VALIDATE:
        if body.startswith("."):
            body = body[1:]
        return f"(buf.validate.field).{body}"
    return body


def render_string_rules(rules: StringRules) -> str:
    """Render string rules as ``.string = { ... }``."""
    out: List[str] = []
    if rules.const is not None:
        out.append(f"const: {_quote(rules.const)}")
    for name, value in (
        ("len", rules.len),
        ("min_len", rules.min_len),
        ("max_len", rules.max_len),
        ("len_bytes", rules.len_bytes),
    ):
        if value is not None:
            out.append(f"{name}: {int(value)}")
    for name, value in (
        ("pattern", rules.pattern),
        ("prefix", rules.prefix),
        ("suffix", rules.suffix),
        ("contains", rules.contains),
    ):
        if value is not None:
            out.append(f"{name}: {_quote(value)}")
    if rules.in_:
        out.append(f"in: {_list(_quote(s) for s in rules.in_)}")
    if rules.not_in:
        out.append(f"not_in: {_list(_quote(s) for s in rules.not_in)}")
    for name, flag in (
        ("email", rules.email),
        ("hostname", rules.hostname),
        ("ip", rules.ip),
        ("ipv4", rules.ipv4),
        ("ipv6", rules.ipv6),
        ("uri", rules.uri),
        ("uri_ref", rules.uri_ref),
        ("address", rules.address),
        ("uuid", rules.uuid),
        ("ignore_empty", rules.ignore_empty),
    ):
        if flag:
            out.append(f"{name}: true")
    if not out:
        return ""
    return f".string = {{ {', '.join(out)} }}"


def render_number_rules(rules: NumberRules, proto_type: str) -> str:
    """Render numeric rules as ``.<proto_type> = { ... }``."""
    is_float = proto_type in ("float", "double")

    def fmt(v: float) -> str:
        return f"{float(v):f}" if is_float else str(int(v))

    out: List[str] = []
    for name, value in (
        ("const", rules.const),
        ("lt", rules.lt),
        ("lte", rules.lte),
        ("gt", rules.gt),
        ("gte", rules.gte),
    ):
        if value is not None:
            out.append(f"{name}: {fmt(value)}")
    if rules.in_:
        out.append(f"in: {_list(fmt(v) for v in rules.in_)}")
    if rules.not_in:
        out.append(f"not_in: {_list(fmt(v) for v in rules.not_in)}")
    if rules.ignore_empty:
        out.append("ignore_empty: true")
    if not out:
        return ""
    return f".{proto_type} = {{ {', '.join(out)} }}"


def render_repeated_rules(rules: RepeatedRules) -> str:
    """Render repeated-field rules as ``.repeated = { ... }``."""
    out: List[str] = []
    for name, value in (
        ("len", rules.len),
        ("min_items", rules.min_items),
        ("max_items", rules.max_items),
    ):
        if value is not None:
            out.append(f"{name}: {int(value)}")
    if rules.unique:
        out.append("unique: true")
    if rules.ignore_empty:
        out.append("ignore_empty: true")
    if not out:
        return ""
    return f".repeated = {{ {', '.join(out)} }}"


def render_enum_rules(rules: EnumRules) -> str:
    """Render enum rules as ``.enum = { ... }``."""
    out: List[str] = []
    if rules.const is not None:
        out.append(f"const: {int(rules.const)}")
    if rules.defined_only:
        out.append("defined_only: true")
    if rules.in_:
        out.append(f"in: {_list(str(int(v)) for v in rules.in_)}")
    if rules.not_in:
        out.append(f"not_in: {_list(str(int(v)) for v in rules.not_in)}")
    if not out:
        return ""
    return f".enum = {{ {', '.join(out)} }}"