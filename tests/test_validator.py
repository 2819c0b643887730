import pytest

from lazyent.schema import Field
from lazyent.types import (
    Annotation,
    EnumRules,
    NumberRules,
    ProtoValidator,
    RepeatedRules,
    StringRules,
    ValidationRules,
)
from lazyent.validator import (
    get_validate_rules,
    is_validation_empty,
    render_enum_rules,
    render_number_rules,
    render_repeated_rules,
    render_string_rules,
    render_validation_rules,
)


def annotated(name, type_, annotation, **kwargs):
    return Field(name=name, type=type_, annotations={"LazyEnt": annotation}, **kwargs)


@pytest.mark.parametrize(
    "field",
    [
        Field(name="id", type="uuid.UUID"),
        Field(name="status", enums=("ACTIVE", "BANNED")),
        annotated("name", "string", Annotation(proto_validation="min_len:1")),
    ],
)
def test_no_validator_renders_nothing(field):
    assert get_validate_rules(field, "User", ProtoValidator.NO_VALIDATOR) == ""


def test_uuid_field_gets_uuid_rule_pgv():
    field = Field(name="id", type="uuid.UUID")
    assert get_validate_rules(field, "User", ProtoValidator.PGV) == ".string = { uuid: true }"


def test_uuid_field_proto_validate_prefix():
    field = Field(name="id", type="uuid.UUID")
    result = get_validate_rules(field, "User", ProtoValidator.PROTO_VALIDATE)
    assert result == "(buf.validate.field).string = { uuid: true }"


def test_enum_field_defined_only():
    field = Field(name="status", enums=("ACTIVE", "BANNED"))
    assert get_validate_rules(field, "User", ProtoValidator.PGV) == ".enum = { defined_only: true }"


def test_external_enum_and_plain_field_have_no_rules():
    ext = Field(name="kind", type="types.Kind", pkg_path="example.com/types", enum=True)
    plain = Field(name="name", type="string")
    assert get_validate_rules(ext, "User", ProtoValidator.PGV) == ""
    assert get_validate_rules(plain, "User", ProtoValidator.PGV) == ""


def test_legacy_string_rule_wrapped_with_proto_type():
    field = annotated("name", "string", Annotation(proto_validation="min_len:1,max_len:10"))
    result = get_validate_rules(field, "User", ProtoValidator.PGV)
    assert result == ".string = { min_len: 1, max_len: 10 }"


def test_legacy_dotted_rule_returned_as_is_for_pgv():
    field = annotated("name", "string", Annotation(proto_validation=".string.min_len = 1"))
    assert get_validate_rules(field, "User", ProtoValidator.PGV) == ".string.min_len = 1"


def test_legacy_dotted_rule_dot_trimmed_for_proto_validate():
    field = annotated("name", "string", Annotation(proto_validation=".string.min_len = 1"))
    result = get_validate_rules(field, "User", ProtoValidator.PROTO_VALIDATE)
    assert result == ".string = { string.min_len = 1 }"


def test_legacy_repeated_with_items():
    field = annotated(
        "tags", "[]string", Annotation(proto_validation="repeated: {items: {string: {min_len: 1}}}")
    )
    result = get_validate_rules(field, "User", ProtoValidator.PGV)
    assert result.startswith(".repeated = { repeated: ")
    assert result.endswith(" }")


def test_structured_rules_win_over_legacy():
    ann = Annotation(
        proto_validation="min_len:1",
        validation=ValidationRules(number=NumberRules(gte=0, lte=150)),
    )
    field = annotated("age", "int", ann)
    assert get_validate_rules(field, "User", ProtoValidator.PGV) == ".int32 = { lte: 150, gte: 0 }"


def test_annotation_not_mutated_by_defaults():
    ann = Annotation(validation=ValidationRules(string=StringRules(min_len=2)))
    field = annotated("id", "uuid.UUID", ann)
    first = get_validate_rules(field, "User", ProtoValidator.PGV)
    second = get_validate_rules(field, "User", ProtoValidator.PGV)
    assert first == second == ".string = { min_len: 2, uuid: true }"
    assert ann.validation.string.uuid is False


def test_is_validation_empty():
    assert is_validation_empty(None) is True
    assert is_validation_empty(ValidationRules()) is True
    assert is_validation_empty(ValidationRules(enum=EnumRules())) is False


def test_render_validation_rules_keeps_empty_parts_in_join():
    rules = ValidationRules(string=StringRules(), enum=EnumRules(defined_only=True))
    result = render_validation_rules(rules, ProtoValidator.PGV, "string")
    assert result == ", .enum = { defined_only: true }"


def test_render_string_rules_order_and_quoting():
    rules = StringRules(
        const='a"b',
        max_len=5,
        pattern="^\\d+$",
        in_=["x", "y"],
        email=True,
        ignore_empty=True,
    )
    result = render_string_rules(rules)
    assert result.startswith(".string = { const: ")
    assert '\\"' in result
    assert 'in: ["x", "y"]' in result
    assert result.index("max_len: 5") < result.index("pattern:")
    assert result.index("email: true") < result.index("ignore_empty: true")


def test_render_string_rules_empty():
    assert render_string_rules(StringRules()) == ""


def test_render_number_rules_integer_truncates():
    rules = NumberRules(lt=10.9, in_=[1, 2.7])
    result = render_number_rules(rules, "int64")
    assert result.startswith(".int64 = { ")
    assert "lt: 10," in result
    assert "in: [1, 2]" in result


def test_render_number_rules_float_format():
    rules = NumberRules(gt=0.5)
    assert render_number_rules(rules, "double") == ".double = { gt: 0.500000 }"


def test_render_number_rules_empty():
    assert render_number_rules(NumberRules(), "int32") == ""


def test_render_repeated_rules():
    rules = RepeatedRules(min_items=1, max_items=3, unique=True)
    result = render_repeated_rules(rules)
    assert result.startswith(".repeated = { min_items: 1")
    assert "unique: true" in result
    assert render_repeated_rules(RepeatedRules()) == ""


def test_render_enum_rules():
    rules = EnumRules(const=2, defined_only=True, not_in=[0, 3])
    result = render_enum_rules(rules)
    assert result.startswith(".enum = { const: 2")
    assert "not_in: [0, 3]" in result
    assert render_enum_rules(EnumRules()) == ""


def test_proto_validate_wraps_structured_number_rules():
    rules = ValidationRules(number=NumberRules(gte=1))
    pgv = render_validation_rules(rules, ProtoValidator.PGV, "int32")
    buf = render_validation_rules(rules, ProtoValidator.PROTO_VALIDATE, "int32")
    assert buf == "(buf.validate.field)." + pgv[1:]