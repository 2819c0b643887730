"""Annotation, validator and validation-rule types used by the generator."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import IntEnum
from typing import Dict, List, Optional


class EdgeFieldStrategy(IntEnum):
    """How an edge is represented in the biz layer and in proto messages."""

    # Biz: *Group / []*Group, Proto: Group group / repeated Group groups
    BIZ_POINTER_WITH_PROTO_MESSAGE = 0
    # Biz: *Group / []*Group, Proto: string group_id / repeated string group_ids
    BIZ_POINTER_WITH_PROTO_ID = 1
    # Biz: *Group / []*Group, Proto: excluded
    BIZ_POINTER_WITH_PROTO_EXCLUDE = 2
    # Biz: GroupID / []GroupID, Proto: string group_id / repeated string group_ids
    BIZ_ID_WITH_PROTO_ID = 3
    # Biz: GroupID / []GroupID, Proto: excluded
    BIZ_ID_WITH_PROTO_EXCLUDE = 4
    # Biz and Proto: excluded
    BIZ_EXCLUDE_WITH_PROTO_EXCLUDE = 5


class ProtoValidator(IntEnum):
    """Which validation option syntax is emitted into proto files."""

    NO_VALIDATOR = 0
    PGV = 1
    PROTO_VALIDATE = 2


@dataclass
class StringRules:
    """Validation rules for string fields."""

    const: Optional[str] = None
    len: Optional[int] = None
    min_len: Optional[int] = None
    max_len: Optional[int] = None
    len_bytes: Optional[int] = None
    pattern: Optional[str] = None
    prefix: Optional[str] = None
    suffix: Optional[str] = None
    contains: Optional[str] = None
    in_: List[str] = field(default_factory=list)
    not_in: List[str] = field(default_factory=list)
    email: bool = False
    hostname: bool = False
    ip: bool = False
    ipv4: bool = False
    ipv6: bool = False
    uri: bool = False
    uri_ref: bool = False
    address: bool = False
    uuid: bool = False
    ignore_empty: bool = False


@dataclass
class NumberRules:
    """Validation rules for integer and floating point fields."""

    const: Optional[float] = None
    lt: Optional[float] = None
    lte: Optional[float] = None
    gt: Optional[float] = None
    gte: Optional[float] = None
    in_: List[float] = field(default_factory=list)
    not_in: List[float] = field(default_factory=list)
    ignore_empty: bool = False


@dataclass
class RepeatedRules:
    """Validation rules for repeated fields."""

    len: Optional[int] = None
    min_items: Optional[int] = None
    max_items: Optional[int] = None
    unique: bool = False
    ignore_empty: bool = False


@dataclass
class EnumRules:
    """Validation rules for enum fields."""

    const: Optional[int] = None
    defined_only: bool = False
    in_: List[int] = field(default_factory=list)
    not_in: List[int] = field(default_factory=list)


@dataclass
class ValidationRules:
    """Structured validation rules, rendered to PGV or ProtoValidate syntax."""

    string: Optional[StringRules] = None
    number: Optional[NumberRules] = None
    repeated: Optional[RepeatedRules] = None
    enum: Optional[EnumRules] = None


@dataclass
class Annotation:
    """Per-field or per-edge generator configuration."""

    enum_values: Optional[Dict[str, int]] = None
    edge_field_strategy: EdgeFieldStrategy = EdgeFieldStrategy.BIZ_POINTER_WITH_PROTO_MESSAGE
    biz_name: str = ""
    biz_type: str = ""
    proto_name: str = ""
    proto_type: str = ""
    proto_field_id: int = 0
    proto_validation: str = ""
    validation: Optional[ValidationRules] = None

    def name(self) -> str:
        """Key under which the annotation is stored on a schema element."""
        return "LazyEnt"