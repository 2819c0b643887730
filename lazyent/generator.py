"""Proto descriptor building and output configuration for the code generator."""

from __future__ import annotations

import dataclasses
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Tuple, Union

from lazyent import converter, helpers
from lazyent.helpers import (
    edge_field,
    edge_has_fk,
    edge_proto_type,
    get_edge_annotation,
    get_enum_values,
    get_field_annotation,
    get_proto_tag,
    has_field,
    is_external_enum,
    is_proto_exclude,
    is_proto_id,
    is_proto_message,
)
from lazyent.schema import Field, Graph, Node
from lazyent.types import ProtoValidator
from lazyent.validator import get_validate_rules

TIMESTAMP_IMPORT = "google/protobuf/timestamp.proto"

_UUID_REPEATED_RULES = ".repeated = {\n    items: {\n      string: { uuid: true }\n    }\n  }"
_UUID_SINGLE_RULES = ".string.uuid = true"


@dataclass
class Config:
    """Where and how generated files are written."""

    proto_out: str = ""
    proto_package: str = ""
    go_package: str = ""
    biz_out: str = ""
    service_out: str = ""
    data_out: str = ""
    single_file: bool = False
    proto_validator: ProtoValidator = ProtoValidator.NO_VALIDATOR
    biz_base_file_name: str = ""
    biz_entity_file_name: str = ""
    svc_mapper_file_name: str = ""
    data_mapper_file_name: str = ""
    proto_file_name: str = ""


@dataclass
class PbField:
    """A field of a generated proto message."""

    name: str
    type: str = ""
    tag: int = 0
    rules: str = ""
    repeated: bool = False
    comment: str = ""


@dataclass
class PbMessage:
    """A generated proto message."""

    name: str
    fields: List[PbField] = field(default_factory=list)
    comment: str = ""


@dataclass
class PbEnumValue:
    """A value of a generated proto enum."""

    name: str
    number: int


@dataclass
class PbEnum:
    """A generated proto enum."""

    name: str
    values: List[PbEnumValue] = field(default_factory=list)


@dataclass
class PbElement:
    """One top-level element of a proto file: an enum or a message."""

    enum: Optional[PbEnum] = None
    message: Optional[PbMessage] = None


@dataclass
class PbFile:
    """The structure of a generated .proto file."""

    package: str
    go_package: str = ""
    imports: List[str] = field(default_factory=list)
    elements: List[PbElement] = field(default_factory=list)

    def add_import(self, path: str) -> None:
        """Add an import path unless present, keeping the list sorted."""
        if path in self.imports:
            return
        self.imports.append(path)
        self.imports.sort()


@dataclass
class _FieldInfo:
    pf: PbField
    is_id: bool = False
    field: Optional[Field] = None
    edge: Any = None


_RESOLVED_TYPES = {
    "int": "int32",
    "int32": "int32",
    "int64": "int64",
    "uint64": "int64",
    "string": "string",
    "bool": "bool",
    "float64": "double",
    "float32": "float",
    "uuid.UUID": "string",
    "[]byte": "bytes",
    "[]string": "string",
}


class Generator:
    """Builds proto file descriptors for an entity graph."""

    def __init__(self, config: Optional[Config] = None) -> None:
        self.config = dataclasses.replace(config) if config is not None else Config()

    def resolve_defaults(self, graph: Graph) -> None:
        """Fill in every unset configuration value with its default."""
        c = self.config
        c.biz_out = c.biz_out or "internal/biz"
        c.service_out = c.service_out or "internal/service"
        c.data_out = c.data_out or "internal/data"
        c.proto_out = c.proto_out or "api/v1"
        if not c.proto_package:
            c.proto_package = graph.package
            if c.proto_package == "ent":
                c.proto_package = "api.v1"
        c.biz_base_file_name = c.biz_base_file_name or "entities_base_gen.go"
        c.biz_entity_file_name = c.biz_entity_file_name or "entities.go"
        c.svc_mapper_file_name = c.svc_mapper_file_name or "service_mappers_gen.go"
        c.data_mapper_file_name = c.data_mapper_file_name or "data_mappers_gen.go"
        c.proto_file_name = c.proto_file_name or "dtos_gen.proto"

    def _new_file(self) -> PbFile:
        validator = ProtoValidator(self.config.proto_validator)
        imports: List[str] = []
        if validator == ProtoValidator.PGV:
            imports.append("validate/validate.proto")
        elif validator == ProtoValidator.PROTO_VALIDATE:
            imports.append("buf/validate/validate.proto")
        return PbFile(
            package=self.config.proto_package,
            go_package=self.config.go_package,
            imports=imports,
        )

    def build_proto_file(self, graph: Graph) -> PbFile:
        """Descriptor of one proto file holding every node of the graph."""
        self.resolve_defaults(graph)
        proto_file = self._new_file()
        for node in graph.nodes:
            message = self.build_proto_message(node, proto_file)
            proto_file.elements.extend(
                PbElement(enum=self.build_proto_enum(node, f))
                for f in node.fields
                if f.is_enum() and not is_external_enum(f)
            )
            proto_file.elements.append(PbElement(message=message))
        return proto_file

    def build_single_node_proto(self, graph: Graph, node_name: str) -> PbFile:
        """Descriptor of the proto file for the node with the given name."""
        self.resolve_defaults(graph)
        proto_file = self._new_file()
        for node in graph.nodes:
            if node.name != node_name:
                continue
            proto_file.elements.extend(
                PbElement(enum=self.build_proto_enum(node, f))
                for f in node.fields
                if f.is_enum()
            )
            message = self.build_proto_message(node, proto_file)
            proto_file.elements.append(PbElement(message=message))
        return proto_file

    def build_proto_message(self, node: Node, proto_file: PbFile) -> PbMessage:
        """Message for a node: ID, fields, then edges, with tags assigned."""
        used_tags: set = set()
        infos = self._build_fields(node, proto_file, used_tags)
        infos.extend(self._build_edges(node))
        message = PbMessage(name=node.name)
        current = 1
        for info in infos:
            if info.pf.tag == 0:
                while current in used_tags:
                    current += 1
                info.pf.tag = current
                used_tags.add(current)
            message.fields.append(info.pf)
        return message

    def _field_to_pb(
        self, fld: Field, node: Node, proto_file: PbFile, used_tags: set
    ) -> PbField:
        pf = PbField(
            name=fld.name,
            rules=get_validate_rules(fld, node.name, self.config.proto_validator),
            comment=fld.comment,
        )
        a = get_field_annotation(fld)
        if a is not None and a.proto_name:
            pf.name = a.proto_name
        tag = get_proto_tag(fld, -1)
        if tag > 0:
            pf.tag = tag
            used_tags.add(tag)
        return pf

    def _build_fields(
        self, node: Node, proto_file: PbFile, used_tags: set
    ) -> List[_FieldInfo]:
        results: List[_FieldInfo] = []
        if node.id is not None:
            pf = self._field_to_pb(node.id, node, proto_file, used_tags)
            pf.type = self.resolve_proto_type(node.id, node.name, proto_file)
            results.append(_FieldInfo(pf=pf, is_id=True, field=node.id))
        for fld in node.fields:
            if fld.sensitive:
                continue
            pf = self._field_to_pb(fld, node, proto_file, used_tags)
            if fld.is_enum() and is_external_enum(fld):
                pf.type = "string"
            else:
                pf.type = self.resolve_proto_type(fld, node.name, proto_file)
            pf.repeated = fld.type.startswith("[]") and fld.type != "[]byte"
            results.append(_FieldInfo(pf=pf, field=fld))
        return results

    def _build_edges(self, node: Node) -> List[_FieldInfo]:
        results: List[_FieldInfo] = []
        for edge in node.edges:
            if is_proto_exclude(edge):
                continue
            if is_proto_message(edge):
                pf = PbField(name=edge.name, type=edge.type.name, repeated=not edge.unique)
                results.append(_FieldInfo(pf=pf, edge=edge))
                continue
            if not (
                is_proto_id(edge)
                or (edge_has_fk(edge) and not has_field(node.fields, edge_field(edge)))
            ):
                continue
            name = edge.name
            a = get_edge_annotation(edge)
            if a is not None and a.proto_name:
                name = a.proto_name
            pf = PbField(name=name, type=edge_proto_type(edge), repeated=not edge.unique)
            if helpers.edge_id_type(edge) == "uuid.UUID":
                if pf.repeated:
                    pf.rules = _UUID_REPEATED_RULES
                elif pf.type == "string":
                    pf.rules = _UUID_SINGLE_RULES
            results.append(_FieldInfo(pf=pf, edge=edge))
        return results

    def build_proto_enum(self, node: Node, field: Field) -> PbEnum:
        """Proto enum for an enum field, named after its node."""
        enum_name = node.name + field.struct_field()
        prefix = enum_name.upper() + "_"
        pe = PbEnum(name=enum_name)
        values = get_enum_values(field)
        if values is not None:
            if field.enums:
                pe.values = [
                    PbEnumValue(prefix + item, values[item])
                    for item in field.enums
                    if item in values
                ]
            else:
                pe.values = [PbEnumValue(prefix + k, values[k]) for k in sorted(values)]
        else:
            pe.values = [PbEnumValue(prefix + item, i) for i, item in enumerate(field.enums)]
        return pe

    def resolve_proto_type(self, field: Field, node_name: str, proto_file: PbFile) -> str:
        """Proto type of a field; adds the timestamp import when needed."""
        a = get_field_annotation(field)
        if a is not None and a.proto_type:
            return a.proto_type
        if field.is_enum():
            return node_name + field.struct_field()
        if field.type == "time.Time":
            proto_file.add_import(TIMESTAMP_IMPORT)
            return "google.protobuf.Timestamp"
        return _RESOLVED_TYPES.get(field.type, "string")


_MODULE_LINE = re.compile(r'^\s*module\s+("?)([^"\s]+)\1\s*$')


def find_module(start: Union[str, Path, None] = None) -> Tuple[str, Path]:
    """Module path and root directory of the nearest go.mod at or above ``start``."""
    directory = Path(start) if start is not None else Path.cwd()
    directory = directory.resolve()
    for candidate in (directory, *directory.parents):
        mod_file = candidate / "go.mod"
        if mod_file.is_file():
            text = mod_file.read_text(encoding="utf-8")
            for line in text.splitlines():
                line = line.split("//", 1)[0]
                match = _MODULE_LINE.match(line)
                if match:
                    return match.group(2), candidate
            raise ValueError(f"{mod_file}: no module directive")
    raise FileNotFoundError("go.mod not found")


TEMPLATE_FUNCS: Dict[str, Callable[..., Any]] = {
    "getEnumValues": helpers.get_enum_values,
    "getEnumPairs": helpers.get_enum_pairs,
    "protoType": helpers.proto_type,
    "getValidateRules": lambda f: get_validate_rules(f, "", ProtoValidator.PGV),
    "getProtoTag": helpers.get_proto_tag,
    "convertToProto": converter.convert_to_proto,
    "convertFromProto": converter.convert_from_proto,
    "add": lambda a, b: a + b,
    "lower": str.lower,
    "upper": str.upper,
    "hasTime": helpers.has_time,
    "hasUUID": helpers.has_uuid,
    "hasTimeNodes": helpers.has_time_nodes,
    "hasUUIDNodes": helpers.has_uuid_nodes,
    "edgeHasFK": helpers.edge_has_fk,
    "edgeField": helpers.edge_field,
    "hasField": helpers.has_field,
    "protoStructField": helpers.proto_struct_field,
    "protoGoName": helpers.proto_go_name,
    "edgeIDType": helpers.edge_id_type,
    "edgeProtoType": helpers.edge_proto_type,
    "edgeConvertToProto": converter.edge_convert_to_proto,
    "edgeConvertFromProto": converter.edge_convert_from_proto,
    "zeroValue": helpers.zero_value,
    "validateConflict": helpers.validate_conflict,
    "isBizIDOnly": helpers.is_biz_id_only,
    "isBizExclude": helpers.is_biz_exclude,
    "isBizPointer": helpers.is_biz_pointer,
    "isSensitive": helpers.is_sensitive,
    "isProtoID": helpers.is_proto_id,
    "isProtoMessage": helpers.is_proto_message,
    "isProtoExclude": helpers.is_proto_exclude,
    "enumToProtoFunc": converter.enum_to_proto_func_name,
    "enumFromProtoFunc": converter.enum_from_proto_func_name,
    "getAllEnums": helpers.get_all_enums,
    "bizFieldName": helpers.biz_field_name,
    "isExternalEnum": helpers.is_external_enum,
    "getExternalEnumPkg": helpers.get_external_enum_pkg,
    "getExternalEnumName": helpers.get_external_enum_name,
    "isSlice": helpers.is_slice,
    "getSliceElementType": helpers.get_slice_element_type,
    "getGoProtoType": helpers.get_go_proto_type,
    "isSliceTypeMatch": helpers.is_slice_type_match,
    "collectExternalImports": helpers.collect_external_imports,
    "getEnumLiteralValues": helpers.get_enum_literal_values,
    "bizFieldType": helpers.biz_field_type,
    "explicitBizType": helpers.explicit_biz_type,
    "bizEdgeName": helpers.biz_edge_name,
    "pascal": helpers.pascal,
    "camel": helpers.camel,
    "convertEntToBiz": converter.convert_ent_to_biz,
    "convertBizToEnt": converter.convert_biz_to_ent,
    "requiresErrorCheck": converter.requires_error_check,
    "convertFromProtoSetup": converter.convert_from_proto_setup,
    "convertFromProtoUsage": converter.convert_from_proto_usage,
    "convertBizToEntSetup": converter.convert_biz_to_ent_setup,
    "convertBizToEntUsage": converter.convert_biz_to_ent_usage,
}