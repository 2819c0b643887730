# lazyent

lazyent works on an in-memory entity schema graph and produces the pieces
needed to connect three layers of an application: the protobuf transport
layer, a business ("biz") layer and the storage ("ent") layer. It builds
`.proto` file descriptors, renders field validation options, and produces Go
source expressions that convert values between the layers.

## The schema model

`lazyent.schema` describes the input:

- `Graph(package, nodes)` — the nodes generated together;
- `Node(name, id, fields, edges)` — an entity type;
- `Field(name, type, ...)` — a field, with a Go-style type name such as
  `"string"`, `"int"`, `"time.Time"`, `"uuid.UUID"` or `"[]string"`, and flags
  for enums (`enum`, `enums`, `pkg_path` for enums from another package),
  `nillable`, `optional`, `sensitive`, a `comment` and `annotations`;
- `Edge(name, type, unique, inverse, ref, annotations)` — a relation to
  another node.

`Field.struct_field()` and `Edge.struct_field()` give the Go struct field name
(`created_at` → `CreatedAt`, `user_id` → `UserID`).

## Proto descriptors

`lazyent.generator.Generator`, configured with a `Config`, builds `PbFile`
descriptors made of `PbElement`s, each holding a `PbEnum` (with numbered
`PbEnumValue`s) or a `PbMessage` (with `PbField`s):

- `build_proto_file(graph)` — one file for every node: for each node, its
  enums followed by its message;
- `build_single_node_proto(graph, node_name)` — the file for one node;
- `build_proto_message(node, proto_file)` — the ID, the non-sensitive fields
  and the edges of a node. Tags come from an annotation's `proto_field_id`
  where given; the rest are assigned in order from 1, skipping tags in use;
- `build_proto_enum(node, field)` — values named `<NODE><FIELD>_<VALUE>`,
  numbered by declaration order or by the annotation's `enum_values`;
- `resolve_proto_type(field, node_name, proto_file)` — the proto type of a
  field; `time.Time` adds the `google/protobuf/timestamp.proto` import.

The file's imports include the validator's proto file when a validator is
selected. `PbFile.add_import` keeps imports unique and sorted.

`Generator.resolve_defaults(graph)` fills in unset `Config` values:

| setting | default |
| --- | --- |
| `proto_out` | `api/v1` |
| `biz_out` | `internal/biz` |
| `service_out` | `internal/service` |
| `data_out` | `internal/data` |
| `proto_package` | the graph's package, or `api.v1` when that is `ent` |
| `proto_file_name` | `dtos_gen.proto` |
| `biz_base_file_name` | `entities_base_gen.go` |
| `biz_entity_file_name` | `entities.go` |
| `svc_mapper_file_name` | `service_mappers_gen.go` |
| `data_mapper_file_name` | `data_mappers_gen.go` |

`Config.proto_validator` defaults to `ProtoValidator.NO_VALIDATOR`.

`find_module(start)` walks up from `start` (or the working directory) to the
nearest `go.mod` and returns its module path and directory; it raises
`FileNotFoundError` when there is none and `ValueError` when the file has no
module line.

## Validation rules

`lazyent.validator.get_validate_rules(field, node_name, validator)` returns the
option text for a proto field, in protoc-gen-validate syntax
(`ProtoValidator.PGV`) or buf protovalidate syntax
(`ProtoValidator.PROTO_VALIDATE`), or an empty string for
`ProtoValidator.NO_VALIDATOR`. Local enums get `defined_only: true` and UUID
fields `uuid: true` automatically. Structured rules (`ValidationRules` with
`StringRules`, `NumberRules`, `RepeatedRules`, `EnumRules`) are rendered by
`render_validation_rules` and the `render_*_rules` functions; a raw
`proto_validation` string is used when no structured rule applies.

## Conversion expressions

`lazyent.converter` returns Go source text:

- `convert_to_proto`, `convert_from_proto` — between biz and proto values;
- `convert_ent_to_biz`, `convert_biz_to_ent` — between ent and biz values;
- `edge_convert_to_proto`, `edge_convert_from_proto` — for edges;
- `requires_error_check(field, mode)` with a `ConversionMode`, and the
  `convert_from_proto_setup` / `_usage` and `convert_biz_to_ent_setup` /
  `_usage` pairs, which emit a checked parse block and the variable to use
  after it for UUID and RFC 3339 time conversions.

`lazyent.helpers` holds the naming, typing and annotation helpers these build
on, and `lazyent.generator.TEMPLATE_FUNCS` maps template function names to
them.

## Annotations

Fields and edges can carry an `Annotation`, or a plain mapping under the key
`"LazyEnt"` or `"lazyent"`:

- `biz_name`, `biz_type` — name and type of the field in the biz layer;
- `proto_name`, `proto_type`, `proto_field_id` — name, type and tag in proto;
- `enum_values` — explicit enum numbers;
- `validation` — structured `ValidationRules`, or `proto_validation` as a raw
  rule string;
- `edge_field_strategy` — an `EdgeFieldStrategy` choosing whether an edge is
  a pointer, an ID or left out in the biz and proto layers.

## What it does not do

lazyent builds descriptors and expression strings only. It does not render
`.proto` or Go files from templates, write anything to disk, load schemas from
source files, or offer a command-line tool; turning its output into files is
left to the caller.

## Development

```
pip install -e ".[test]"
pytest
```