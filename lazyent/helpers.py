"""Naming, typing and annotation helpers shared by the code generators."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from lazyent.schema import Edge, Field, Node
from lazyent.types import Annotation, EdgeFieldStrategy

_ANNOTATION_KEYS = ("LazyEnt", "lazyent")


@dataclass(frozen=True)
class EnumPair:
    """An enum literal together with its proto number."""

    key: str
    value: int


@dataclass(frozen=True)
class EnumDef:
    """An enum field and the name of the node that owns it."""

    node_name: str
    field: Field


def _node_parts(node: Any) -> Optional[Tuple[str, List[Field], List[Edge]]]:
    """Name, fields and edges of a node given as a Node or a template mapping."""
    if isinstance(node, Node):
        return node.name, list(node.fields), list(node.edges)
    if isinstance(node, Mapping):
        name = node.get("Name", "")
        fields = node.get("Fields") or []
        edges = node.get("Edges") or []
        return name, list(fields), list(edges)
    return None


def _edge_id_type(edge: Edge) -> str:
    ident = edge.type.id
    return ident.type if ident is not None else ""


def has_time_nodes(nodes: Iterable[Any]) -> bool:
    """Whether any node has a ``time.Time`` field."""
    for node in nodes:
        parts = _node_parts(node)
        if parts is not None and has_time(parts[1]):
            return True
    return False


def has_uuid_nodes(nodes: Iterable[Any]) -> bool:
    """Whether any node has a UUID field or an edge to a UUID-keyed node."""
    for node in nodes:
        parts = _node_parts(node)
        if parts is not None and has_uuid(parts[1], parts[2]):
            return True
    return False


def has_time(fields: Iterable[Field]) -> bool:
    """Whether any of the fields is a ``time.Time``."""
    return any(f.type == "time.Time" for f in fields)


def has_uuid(fields: Iterable[Field], edges: Iterable[Edge]) -> bool:
    """Whether any field is a UUID or any edge points to a UUID-keyed node."""
    if any(f.type == "uuid.UUID" for f in fields):
        return True
    return any(_edge_id_type(e) == "uuid.UUID" for e in edges)


def edge_has_fk(edge: Edge) -> bool:
    """Whether the owning table holds the foreign key of the edge."""
    if not edge.is_inverse():
        return edge.unique
    if edge.ref is not None and not edge.ref.unique:
        return edge.unique
    return False


def edge_field(edge: Edge) -> str:
    """Name of the field that backs the edge in the biz struct."""
    return biz_edge_name(edge)


def has_field(fields: Iterable[Field], name: str) -> bool:
    """Whether a field with the given struct name exists."""
    return any(f.struct_field() == name for f in fields)


def edge_id_type(edge: Edge) -> str:
    """Type of the ID of the node the edge points to."""
    return _edge_id_type(edge)


def edge_proto_type(edge: Edge) -> str:
    """Proto type used for an edge."""
    if is_proto_message(edge):
        return edge.type.name
    t = _edge_id_type(edge)
    if t in ("int", "int32"):
        return "int32"
    if t in ("int64", "uint64"):
        return "int64"
    return "string"


def zero_value(type_name: str) -> str:
    """Go zero-value expression for a type name."""
    if type_name in ("int", "int32", "int64", "uint64", "float64", "float32"):
        return "0"
    if type_name == "string":
        return '""'
    if type_name == "bool":
        return "false"
    if type_name == "uuid.UUID":
        return "uuid.Nil"
    if type_name == "time.Time":
        return "time.Time{}"
    return "nil"


_PROTO_TYPES = {
    "int": "int32",
    "int32": "int32",
    "int64": "int64",
    "uint64": "int64",
    "string": "string",
    "bool": "bool",
    "time.Time": "google.protobuf.Timestamp",
    "float64": "double",
    "float32": "float",
    "uuid.UUID": "string",
}


def proto_type(field: Field, node_name: str) -> str:
    """Proto type of a field, enums named after their node."""
    if field.is_enum():
        return node_name + field.struct_field()
    return _PROTO_TYPES.get(field.type, "string")


_SCALAR_PROTO_TYPES = {
    "int": "int32",
    "int32": "int32",
    "int64": "int64",
    "uint64": "uint64",
    "string": "string",
    "bool": "bool",
    "float64": "double",
    "float32": "float",
    "uuid.UUID": "string",
}


def get_proto_type(field: Optional[Field]) -> str:
    """Scalar proto type of a field, honouring an explicit ``proto_type``."""
    if field is None:
        return "string"
    a = get_field_annotation(field)
    if a is not None and a.proto_type:
        return a.proto_type
    return _SCALAR_PROTO_TYPES.get(field.type, "string")


def get_proto_tag(field: Field, index: int) -> int:
    """Proto field number: the annotated one, else ``index + 1``."""
    a = get_field_annotation(field)
    if a is not None and a.proto_field_id > 0:
        return int(a.proto_field_id)
    return index + 1


def proto_go_name(field: Optional[Field]) -> str:
    """Go name of the field in the generated proto struct."""
    if field is None:
        return ""
    a = get_field_annotation(field)
    if a is not None and a.proto_name:
        return pascal(a.proto_name)
    return pascal(field.name)


def get_enum_values(field: Field) -> Optional[Dict[str, int]]:
    """Enum literal to number mapping, or None when there is nothing to map."""
    a = get_field_annotation(field)
    if a is None or a.enum_values is None:
        if field.enums:
            return {value: i for i, value in enumerate(field.enums)}
        return None
    return a.enum_values


def get_enum_pairs(field: Field) -> List[EnumPair]:
    """Enum literals in declaration order with their numbers."""
    a = get_field_annotation(field)
    if a is None or a.enum_values is None:
        return [EnumPair(value, i) for i, value in enumerate(field.enums)]
    return [
        EnumPair(value, a.enum_values[value])
        for value in field.enums
        if value in a.enum_values
    ]


def _lookup_annotation(annotations: Optional[Mapping], decode) -> Optional[Annotation]:
    if not annotations:
        return None
    for key in _ANNOTATION_KEYS:
        if key in annotations:
            value = annotations[key]
            if isinstance(value, Annotation):
                return value
            if isinstance(value, Mapping):
                return decode(value)
    return None


def get_field_annotation(field: Optional[Field]) -> Optional[Annotation]:
    """The generator annotation attached to a field, if any."""
    if field is None:
        return None
    return _lookup_annotation(field.annotations, decode_annotation_map)


def _as_int(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return int(value)
    return None


def _string_value(mapping: Mapping, *keys: str) -> Optional[str]:
    for key in keys:
        if key in mapping:
            value = mapping[key]
            return value if isinstance(value, str) else ""
    return None


def decode_annotation_map(mapping: Mapping[str, Any]) -> Annotation:
    """Build a field annotation from its decoded JSON form."""
    a = Annotation()
    ev = mapping.get("enum_values")
    if isinstance(ev, Mapping):
        values: Dict[str, int] = {}
        for key, val in ev.items():
            number = _as_int(val)
            if number is not None:
                values[key] = number
        a.enum_values = values
    for key in ("proto_field_id", "field_id"):
        if key in mapping:
            number = _as_int(mapping[key])
            if number is not None:
                a.proto_field_id = number
    for key in ("proto_validation", "validate"):
        if key in mapping and isinstance(mapping[key], str):
            a.proto_validation = mapping[key]

    biz_name = _string_value(mapping, "biz_name", "BizName")
    if biz_name is not None:
        a.biz_name = biz_name
    biz_type = _string_value(mapping, "biz_type", "BizType")
    if biz_type is not None:
        a.biz_type = biz_type
    proto_name = _string_value(mapping, "proto_name", "ProtoName")
    if proto_name is not None:
        a.proto_name = proto_name
    proto_type_ = _string_value(mapping, "proto_type", "ProtoType")
    if proto_type_ is not None:
        a.proto_type = proto_type_
    return a


def get_edge_annotation(edge: Edge) -> Optional[Annotation]:
    """The generator annotation attached to an edge, if any."""
    return _lookup_annotation(edge.annotations, decode_edge_annotation_map)


def decode_edge_annotation_map(mapping: Mapping[str, Any]) -> Annotation:
    """Build an edge annotation from its decoded JSON form."""
    a = Annotation()
    if "edge_field_strategy" in mapping:
        number = _as_int(mapping["edge_field_strategy"])
        if number is not None:
            a.edge_field_strategy = EdgeFieldStrategy(number)
    biz_name = _string_value(mapping, "biz_name", "BizName")
    if biz_name is not None:
        a.biz_name = biz_name
    proto_name = _string_value(mapping, "proto_name", "ProtoName")
    if proto_name is not None:
        a.proto_name = proto_name
    return a


def get_strategy(edge: Edge) -> EdgeFieldStrategy:
    """The edge's field strategy, pointer with proto message by default."""
    a = get_edge_annotation(edge)
    if a is not None:
        return EdgeFieldStrategy(a.edge_field_strategy)
    return EdgeFieldStrategy.BIZ_POINTER_WITH_PROTO_MESSAGE


def is_biz_id_only(edge: Edge) -> bool:
    """Whether the biz layer holds only the ID of the edge's target."""
    return get_strategy(edge) in (
        EdgeFieldStrategy.BIZ_ID_WITH_PROTO_ID,
        EdgeFieldStrategy.BIZ_ID_WITH_PROTO_EXCLUDE,
    )


def is_biz_exclude(edge: Edge) -> bool:
    """Whether the edge is left out of the biz layer."""
    return get_strategy(edge) == EdgeFieldStrategy.BIZ_EXCLUDE_WITH_PROTO_EXCLUDE


def is_biz_pointer(edge: Edge) -> bool:
    """Whether the biz layer holds the edge's target entities."""
    return get_strategy(edge) in (
        EdgeFieldStrategy.BIZ_POINTER_WITH_PROTO_MESSAGE,
        EdgeFieldStrategy.BIZ_POINTER_WITH_PROTO_ID,
        EdgeFieldStrategy.BIZ_POINTER_WITH_PROTO_EXCLUDE,
    )


def is_sensitive(field: Optional[Field]) -> bool:
    """Whether the field is marked sensitive."""
    return field is not None and field.sensitive


def is_proto_id(edge: Edge) -> bool:
    """Whether proto messages carry only the ID of the edge's target."""
    return get_strategy(edge) in (
        EdgeFieldStrategy.BIZ_POINTER_WITH_PROTO_ID,
        EdgeFieldStrategy.BIZ_ID_WITH_PROTO_ID,
    )


def is_proto_message(edge: Edge) -> bool:
    """Whether proto messages embed the edge's target message."""
    return get_strategy(edge) == EdgeFieldStrategy.BIZ_POINTER_WITH_PROTO_MESSAGE


def is_proto_exclude(edge: Edge) -> bool:
    """Whether the edge is left out of proto messages."""
    return get_strategy(edge) in (
        EdgeFieldStrategy.BIZ_POINTER_WITH_PROTO_EXCLUDE,
        EdgeFieldStrategy.BIZ_ID_WITH_PROTO_EXCLUDE,
        EdgeFieldStrategy.BIZ_EXCLUDE_WITH_PROTO_EXCLUDE,
    )


def is_slice(field: Field) -> bool:
    """Whether the field is a slice other than ``[]byte``."""
    return field.type.startswith("[]") and field.type != "[]byte"


def get_slice_element_type(field: Field) -> str:
    """Element type of a slice field, or the field type itself."""
    return field.type[2:] if field.type.startswith("[]") else field.type


def get_go_proto_type(field: Field) -> str:
    """Go type generated for the field's proto type."""
    pt = get_proto_type(field)
    if pt == "double":
        return "float64"
    if pt == "float":
        return "float32"
    if pt in ("int32", "uint32", "int64", "uint64", "bool", "string"):
        return pt
    if pt == "bytes":
        return "[]byte"
    return "string"


def is_slice_type_match(field: Field) -> bool:
    """Whether a slice field's element type equals its proto Go type."""
    if not is_slice(field):
        return False
    return get_slice_element_type(field) == get_go_proto_type(field)


def validate_conflict(edge: Edge) -> None:
    """Check an edge's configuration; no combination is currently rejected."""
    return None


def get_all_enums(nodes: Iterable[Any]) -> List[EnumDef]:
    """All locally defined enum fields of the nodes, in order."""
    enums: List[EnumDef] = []
    for node in nodes:
        parts = _node_parts(node)
        if parts is None:
            continue
        name, fields, _ = parts
        enums.extend(
            EnumDef(name, f) for f in fields if f.is_enum() and not is_external_enum(f)
        )
    return enums


def biz_field_name(field: Optional[Field]) -> str:
    """Name of the field in the biz struct."""
    if field is None:
        return ""
    a = get_field_annotation(field)
    if a is not None and a.biz_name:
        return a.biz_name
    return field.struct_field()


def biz_field_type(field: Optional[Field]) -> str:
    """Type of the field in the biz struct; empty for enums without override."""
    if field is None:
        return ""
    a = get_field_annotation(field)
    if a is not None and a.biz_type:
        return a.biz_type
    if field.is_enum():
        return ""
    if field.type == "uuid.UUID":
        return "string"
    return field.type


def explicit_biz_type(field: Optional[Field]) -> str:
    """The annotated biz type, or an empty string."""
    if field is None:
        return ""
    a = get_field_annotation(field)
    if a is not None and a.biz_type:
        return a.biz_type
    return ""


def biz_edge_name(edge: Edge) -> str:
    """Name of the edge in the biz struct."""
    a = get_edge_annotation(edge)
    if a is not None and a.biz_name:
        return a.biz_name
    if is_biz_id_only(edge):
        return edge.struct_field() + "ID"
    return edge.struct_field()


def pascal(s: str) -> str:
    """Convert snake_case to PascalCase."""
    return "".join(p[:1].upper() + p[1:].lower() for p in s.split("_"))


def camel(s: str) -> str:
    """Lower-case the first character."""
    return s[:1].lower() + s[1:]


def proto_struct_field(edge: Edge) -> str:
    """Go name of the edge in the generated proto struct."""
    a = get_edge_annotation(edge)
    if a is not None and a.proto_name:
        return pascal(a.proto_name)
    return pascal(edge.name)


def is_external_enum(field: Field) -> bool:
    """Whether the field is an enum whose type lives in another package."""
    return field.is_enum() and field.pkg_path != ""


def get_external_enum_pkg(field: Optional[Field]) -> str:
    """Import path of an external enum type."""
    return field.pkg_path if field is not None else ""


def get_external_enum_name(field: Optional[Field]) -> str:
    """Qualified name of an external enum type."""
    return field.type if field is not None else ""


def collect_external_imports(nodes: Iterable[Any]) -> List[str]:
    """Sorted, unique import paths of external enums used by the nodes."""
    paths = set()
    for node in nodes:
        parts = _node_parts(node)
        if parts is None:
            continue
        paths.update(get_external_enum_pkg(f) for f in parts[1] if is_external_enum(f))
    return sorted(paths)


def get_enum_literal_values(field: Field) -> List[str]:
    """The enum literals of a field."""
    return list(field.enums)


__all__: Sequence[str] = (
    "EnumPair",
    "EnumDef",
)