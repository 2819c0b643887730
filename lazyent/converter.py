"""Go expressions that convert values between the proto, biz and ent layers."""

from __future__ import annotations

from enum import Enum
from typing import Optional, Union

from lazyent.helpers import (
    biz_edge_name,
    biz_field_name,
    biz_field_type,
    camel,
    edge_id_type,
    explicit_biz_type,
    get_external_enum_name,
    get_proto_type,
    is_biz_id_only,
    is_biz_pointer,
    is_external_enum,
    is_proto_id,
    is_proto_message,
    is_sensitive,
    proto_go_name,
    proto_struct_field,
    validate_conflict,
    zero_value,
)
from lazyent.schema import Edge, Field


class ConversionMode(str, Enum):
    """Direction of a conversion that may need a checked parse."""

    PROTO_TO_BIZ = "ProtoToBiz"
    BIZ_TO_ENT = "BizToEnt"


_GO_PROTO_TYPES = {"double": "float64", "float": "float32", "bytes": "[]byte"}
_PROTO_NUMERIC = ("int32", "int64", "uint32", "uint64", "float32", "float64")
_BIZ_NUMERIC = (
    "int", "int8", "int16", "int32", "int64",
    "uint", "uint8", "uint16", "uint32", "uint64",
    "float32", "float64",
)


def _is_slice_type(type_name: str) -> bool:
    return type_name.startswith("[]") and type_name != "[]byte"


def convert_to_proto(field: Optional[Field], node_name: str) -> str:
    """Expression turning the biz value ``b.<Field>`` into its proto value."""
    if field is None:
        return ""
    if is_sensitive(field):
        return zero_value(get_proto_type(field))
    name = biz_field_name(field)
    if field.is_enum():
        if is_external_enum(field):
            return f"string(b.{name})"
        return f"{enum_to_proto_func_name(field, node_name)}(b.{name})"
    if field.type == "time.Time":
        return f"timestamppb.New(b.{name})"
    if field.type == "uuid.UUID" or _is_slice_type(field.type):
        return f"b.{name}"

    pt = get_proto_type(field)
    go_type = _GO_PROTO_TYPES.get(pt, pt)

    if field.type == "string" and go_type == "string":
        return f"b.{name}"
    if field.type == "bool" and go_type == "bool":
        return f"b.{name}"
    if go_type in _PROTO_NUMERIC:
        return f"{go_type}(b.{name})"
    if go_type == "string":
        return f"string(b.{name})"
    if go_type == "bool":
        return f"bool(b.{name})"
    return f"b.{name}"


def convert_from_proto(field: Optional[Field], node_name: str) -> str:
    """Expression turning the proto value ``p.<Field>`` into its biz value."""
    if field is None:
        return ""
    if is_sensitive(field):
        return zero_value(biz_field_type(field))
    name = proto_go_name(field)
    if field.is_enum():
        if is_external_enum(field):
            return f"{get_external_enum_name(field)}(p.{name})"
        return f"{enum_from_proto_func_name(field, node_name)}(p.{name})"
    if field.type == "time.Time":
        return f"p.{name}.AsTime()"

    target = biz_field_type(field) or field.type

    if field.type == "uuid.UUID":
        if target == "string":
            return f"p.{name}"
        return f"uuid.MustParse(p.{name})"
    if target in ("string", "bool"):
        return f"p.{name}"
    if target in _BIZ_NUMERIC:
        return f"{target}(p.{name})"
    return f"p.{name}"


def convert_ent_to_biz(field: Field, node_name: str, expr: str) -> str:
    """Expression turning the ent value ``expr`` into its biz value."""
    if field.is_enum():
        if is_external_enum(field):
            return expr
        return f"Ent{node_name}{field.struct_field()}ToBiz({expr})"

    biz_type = explicit_biz_type(field)
    if not biz_type:
        if field.type != "uuid.UUID":
            return expr
        biz_type = "string"

    is_ptr = field.nillable
    value = "*" + expr if is_ptr else expr
    ent_type = field.type

    if ent_type == "time.Time" and biz_type == "int64":
        cast = f"{value}.Unix()"
    elif ent_type == "time.Time" and biz_type == "string":
        cast = f"{value}.Format(time.RFC3339)"
    elif ent_type == "uuid.UUID" and biz_type == "string":
        cast = f"{expr}.String()"
    else:
        cast = f"{biz_type}({value})"

    if is_ptr:
        zero = {"string": '""', "bool": "false"}.get(biz_type, "0")
        return (
            f"func() {biz_type} {{ if {expr} != nil {{ return {cast} }}; "
            f"return {zero} }}()"
        )
    return cast


def convert_biz_to_ent(field: Field, node_name: str, expr: str) -> str:
    """Expression turning the biz value ``expr`` into its ent value."""
    if field.is_enum():
        if is_external_enum(field):
            return expr
        return f"Biz{node_name}{field.struct_field()}ToEnt({expr})"

    biz_type = explicit_biz_type(field)
    if not biz_type:
        return expr

    ent_type = field.type
    if ent_type == "time.Time" and biz_type == "int64":
        ent_expr = f"time.Unix({expr}, 0)"
    elif ent_type == "time.Time" and biz_type == "string":
        ent_expr = (
            f"func() time.Time {{ t, _ := time.Parse(time.RFC3339, {expr}); "
            f"return t }}()"
        )
    elif ent_type == "uuid.UUID" and biz_type == "string":
        ent_expr = f"uuid.MustParse({expr})"
    else:
        ent_expr = f"{ent_type}({expr})"

    if field.nillable:
        return f"func() *{ent_type} {{ x := {ent_expr}; return &x }}()"
    return ent_expr


def edge_convert_to_proto(edge: Edge) -> str:
    """Expression turning a biz edge into its proto value."""
    validate_conflict(edge)
    typ = edge_id_type(edge)
    if is_proto_message(edge):
        if is_biz_pointer(edge):
            return f"Biz{edge.type.name}ToProto(b.{biz_edge_name(edge)})"
        return "nil"
    if is_biz_id_only(edge):
        access = f"b.{biz_edge_name(edge)}"
    else:
        access = f"b.{biz_edge_name(edge)}.UUID"
    if typ in ("int", "int32"):
        return f"int32({access})"
    return access


def edge_convert_from_proto(edge: Edge) -> str:
    """Expression turning a proto edge value into its biz value."""
    if is_proto_message(edge):
        if is_biz_pointer(edge):
            return f"Proto{edge.type.name}ToBiz(p.{proto_struct_field(edge)})"
        return "nil"
    if is_biz_pointer(edge) and is_proto_id(edge):
        if edge.unique:
            name = edge.type.name
            return (
                f"&biz.{name}{{{name}Base: biz.{name}Base"
                f"{{UUID: p.{proto_struct_field(edge)}}}}}"
            )
        return "nil"
    if is_biz_id_only(edge):
        field_name = proto_struct_field(edge)
        if edge_id_type(edge) in ("int", "int32"):
            return f"int(p.{field_name})"
        return f"p.{field_name}"
    return zero_value("ptr")


def enum_to_proto_func_name(field: Field, node_name: str) -> str:
    """Name of the generated biz-to-proto enum conversion function."""
    return f"Biz{node_name}{field.struct_field()}ToProto"


def enum_from_proto_func_name(field: Field, node_name: str) -> str:
    """Name of the generated proto-to-biz enum conversion function."""
    return f"Proto{node_name}{field.struct_field()}ToBiz"


def requires_error_check(field: Field, mode: Union[ConversionMode, str]) -> bool:
    """Whether converting the field in this direction needs a checked parse."""
    mode = ConversionMode(mode)
    if mode is ConversionMode.PROTO_TO_BIZ:
        target = biz_field_type(field) or field.type
        return field.type == "uuid.UUID" and target != "string"
    biz_type = explicit_biz_type(field)
    if field.type == "uuid.UUID" and biz_type in ("", "string"):
        return True
    return field.type == "time.Time" and biz_type == "string"


def _parse_block(var: str, call: str, label: str, field_name: str) -> str:
    return (
        f"{var}, err := {call}\n"
        f"if err != nil {{\n"
        f'\treturn nil, fmt.Errorf("invalid {label} for {field_name}: %w", err)\n'
        f"}}"
    )


def _optional_parse_block(
    var: str, ptr_type: str, source: str, call: str, label: str, field_name: str
) -> str:
    return (
        f"var {var} *{ptr_type}\n"
        f'if {source} != "" {{\n'
        f"\tparsed, err := {call}\n"
        f"\tif err != nil {{\n"
        f'\t\treturn nil, fmt.Errorf("invalid {label} for {field_name}: %w", err)\n'
        f"\t}}\n"
        f"\t{var} = &parsed\n"
        f"}}"
    )


def convert_from_proto_setup(field: Field, node_name: str) -> str:
    """Statements that parse a proto value before it is used, or ``""``."""
    if is_sensitive(field):
        return ""
    if not requires_error_check(field, ConversionMode.PROTO_TO_BIZ):
        return ""
    var = camel(field.struct_field()) + "Val"
    return _parse_block(var, f"uuid.Parse(p.{proto_go_name(field)})", "UUID", field.name)


def convert_from_proto_usage(field: Field, node_name: str) -> str:
    """Expression for the biz value, using the setup variable where there is one."""
    if is_sensitive(field):
        return zero_value(biz_field_type(field))
    if requires_error_check(field, ConversionMode.PROTO_TO_BIZ):
        return camel(field.struct_field()) + "Val"
    return convert_from_proto(field, node_name)


def convert_biz_to_ent_setup(field: Field, node_name: str) -> str:
    """Statements that parse a biz value before it is stored, or ``""``."""
    if not requires_error_check(field, ConversionMode.BIZ_TO_ENT):
        return ""
    var = camel(field.struct_field()) + "EntVal"
    source = f"b.{biz_field_name(field)}"

    if field.type == "uuid.UUID":
        call = f"uuid.Parse({source})"
        if field.nillable:
            return _optional_parse_block(var, "uuid.UUID", source, call, "UUID", field.name)
        return _parse_block(var, call, "UUID", field.name)

    if field.type == "time.Time" and explicit_biz_type(field) == "string":
        call = f"time.Parse(time.RFC3339, {source})"
        if field.nillable:
            return _optional_parse_block(
                var, "time.Time", source, call, "Time format", field.name
            )
        return _parse_block(var, call, "Time format", field.name)

    return ""


def convert_biz_to_ent_usage(field: Field, node_name: str) -> str:
    """Expression for the ent value, using the setup variable where there is one."""
    if requires_error_check(field, ConversionMode.BIZ_TO_ENT):
        return camel(field.struct_field()) + "EntVal"
    return convert_biz_to_ent(field, node_name, f"b.{biz_field_name(field)}")