import pytest

from lazyent.generator import (
    TEMPLATE_FUNCS,
    Config,
    Generator,
    PbFile,
    find_module,
)
from lazyent.schema import Edge, Field, Graph, Node
from lazyent.types import Annotation, EdgeFieldStrategy, ProtoValidator


def make_graph(package="ent"):
    group = Node(
        name="Group",
        id=Field(name="id", type="uuid.UUID"),
        fields=[Field(name="name")],
    )
    user = Node(
        name="User",
        id=Field(name="id", type="uuid.UUID"),
        fields=[
            Field(name="name", comment="display name"),
            Field(name="age", type="int", annotations={"LazyEnt": Annotation(proto_field_id=2)}),
            Field(name="status", enums=("active", "inactive")),
            Field(name="created_at", type="time.Time"),
            Field(name="password_hash", sensitive=True),
            Field(name="tags", type="[]string"),
        ],
    )
    user.edges = [
        Edge(name="groups", type=group),
        Edge(
            name="owner",
            type=group,
            unique=True,
            annotations={
                "LazyEnt": Annotation(edge_field_strategy=EdgeFieldStrategy.BIZ_ID_WITH_PROTO_ID)
            },
        ),
        Edge(
            name="hidden",
            type=group,
            annotations={
                "LazyEnt": Annotation(
                    edge_field_strategy=EdgeFieldStrategy.BIZ_EXCLUDE_WITH_PROTO_EXCLUDE
                )
            },
        ),
    ]
    return Graph(package=package, nodes=[group, user])


def pgv_generator():
    return Generator(Config(proto_validator=ProtoValidator.PGV))


def test_resolve_defaults_fill_unset_values():
    gen = Generator()
    gen.resolve_defaults(make_graph())
    assert gen.config.biz_out == "internal/biz"
    assert gen.config.service_out == "internal/service"
    assert gen.config.data_out == "internal/data"
    assert gen.config.proto_out == "api/v1"
    assert gen.config.proto_package == "api.v1"
    assert gen.config.proto_file_name == "dtos_gen.proto"
    assert gen.config.biz_entity_file_name == "entities.go"


def test_resolve_defaults_keeps_set_values_and_uses_graph_package():
    gen = Generator(Config(biz_out="custom/biz"))
    gen.resolve_defaults(make_graph(package="store"))
    assert gen.config.biz_out == "custom/biz"
    assert gen.config.proto_package == "store"


def test_generator_copies_config():
    conf = Config()
    Generator(conf).resolve_defaults(make_graph())
    assert conf.biz_out == ""


def test_add_import_dedupes_and_sorts():
    pf = PbFile(package="p")
    pf.add_import("z.proto")
    pf.add_import("a.proto")
    pf.add_import("z.proto")
    assert pf.imports == ["a.proto", "z.proto"]


def test_build_proto_file_imports_and_order():
    pf = pgv_generator().build_proto_file(make_graph())
    assert pf.package == "api.v1"
    assert pf.imports == sorted(["validate/validate.proto", "google/protobuf/timestamp.proto"])
    kinds = [("enum", e.enum.name) if e.enum else ("msg", e.message.name) for e in pf.elements]
    assert kinds == [("msg", "Group"), ("enum", "UserStatus"), ("msg", "User")]


@pytest.mark.parametrize(
    "validator, expected",
    [
        (ProtoValidator.NO_VALIDATOR, []),
        (ProtoValidator.PROTO_VALIDATE, ["buf/validate/validate.proto"]),
    ],
)
def test_validator_imports(validator, expected):
    graph = Graph(package="ent", nodes=[Node(name="A", fields=[Field(name="x")])])
    pf = Generator(Config(proto_validator=validator)).build_proto_file(graph)
    assert pf.imports == expected


def test_message_tags_unique_and_annotated_tag_kept():
    pf = pgv_generator().build_proto_file(make_graph())
    user = pf.elements[-1].message
    tags = [f.tag for f in user.fields]
    assert len(tags) == len(set(tags))
    assert all(t > 0 for t in tags)
    by_name = {f.name: f for f in user.fields}
    assert by_name["age"].tag == 2
    assert by_name["id"].tag == 1


def test_message_fields_content():
    pf = pgv_generator().build_proto_file(make_graph())
    user = pf.elements[-1].message
    by_name = {f.name: f for f in user.fields}
    assert "password_hash" not in by_name
    assert "hidden" not in by_name
    assert by_name["id"].rules == ".string = { uuid: true }"
    assert by_name["created_at"].type == "google.protobuf.Timestamp"
    assert by_name["status"].type == "UserStatus"
    assert by_name["tags"].repeated is True
    assert by_name["name"].comment == "display name"
    assert by_name["groups"].type == "Group"
    assert by_name["groups"].repeated is True
    assert by_name["owner"].type == "string"
    assert by_name["owner"].rules == ".string.uuid = true"
    assert [f.name for f in user.fields][0] == "id"


def test_build_proto_enum_default_numbering():
    graph = make_graph()
    user = graph.nodes[1]
    pe = Generator().build_proto_enum(user, user.fields[2])
    assert pe.name == "UserStatus"
    assert [(v.name, v.number) for v in pe.values] == [
        ("USERSTATUS_active", 0),
        ("USERSTATUS_inactive", 1),
    ]


def test_build_proto_enum_annotated_values():
    node = Node(name="User")
    fld = Field(
        name="status",
        enums=("active", "inactive"),
        annotations={"LazyEnt": Annotation(enum_values={"active": 5})},
    )
    pe = Generator().build_proto_enum(node, fld)
    assert [(v.name, v.number) for v in pe.values] == [("USERSTATUS_active", 5)]


def test_single_node_proto_includes_external_enum():
    node = Node(
        name="User",
        fields=[Field(name="kind", type="pkg.Kind", pkg_path="example.com/pkg", enums=("a",))],
    )
    graph = Graph(package="ent", nodes=[node, Node(name="Other")])
    pf = Generator().build_single_node_proto(graph, "User")
    assert [e.enum.name for e in pf.elements if e.enum] == ["UserKind"]
    msg = pf.elements[-1].message
    assert msg.name == "User"
    assert msg.fields[0].type == "string"
    assert len(pf.elements) == 2


def test_full_file_skips_external_enum():
    node = Node(
        name="User",
        fields=[Field(name="kind", type="pkg.Kind", pkg_path="example.com/pkg", enums=("a",))],
    )
    pf = Generator().build_proto_file(Graph(package="ent", nodes=[node]))
    assert all(e.enum is None for e in pf.elements)


@pytest.mark.parametrize(
    "type_name, expected",
    [
        ("int", "int32"),
        ("uint64", "int64"),
        ("float64", "double"),
        ("float32", "float"),
        ("[]byte", "bytes"),
        ("uuid.UUID", "string"),
        ("json.RawMessage", "string"),
    ],
)
def test_resolve_proto_type(type_name, expected):
    pf = PbFile(package="p")
    assert Generator().resolve_proto_type(Field(name="x", type=type_name), "N", pf) == expected
    assert pf.imports == []


def test_resolve_proto_type_annotation_override():
    fld = Field(name="x", type="int", annotations={"lazyent": {"proto_type": "sint64"}})
    assert Generator().resolve_proto_type(fld, "N", PbFile(package="p")) == "sint64"


def test_find_module(tmp_path):
    (tmp_path / "go.mod").write_text("module example.com/app\n\ngo 1.21\n")
    nested = tmp_path / "a" / "b"
    nested.mkdir(parents=True)
    module, root = find_module(nested)
    assert module == "example.com/app"
    assert root == tmp_path.resolve()


def test_find_module_without_directive(tmp_path):
    (tmp_path / "go.mod").write_text("go 1.21\n")
    with pytest.raises(ValueError):
        find_module(tmp_path)


def test_template_funcs():
    assert TEMPLATE_FUNCS["add"](1, 2) == 3
    assert TEMPLATE_FUNCS["getValidateRules"](Field(name="id", type="uuid.UUID")) == (
        ".string = { uuid: true }"
    )