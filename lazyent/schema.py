"""In-memory description of an entity graph: nodes, their fields and edges."""

from __future__ import annotations

import keyword
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

_ACRONYMS = frozenset(
    {
        "ACL", "API", "ASCII", "AWS", "CPU", "CSS", "DNS", "EOF", "GB", "GUID",
        "HCL", "HTML", "HTTP", "HTTPS", "ID", "IP", "JSON", "KB", "LHS", "MAC",
        "MB", "QPS", "RAM", "RHS", "RPC", "SLA", "SMTP", "SQL", "SSH", "SSO",
        "TCP", "TLS", "TTL", "UDP", "UI", "UID", "URI", "URL", "UTF8", "UUID",
        "VM", "XML", "XMPP", "XSRF", "XSS",
    }
)

_GO_KEYWORDS = frozenset(
    {
        "break", "case", "chan", "const", "continue", "default", "defer", "else",
        "fallthrough", "for", "func", "go", "goto", "if", "import", "interface",
        "map", "package", "range", "return", "select", "struct", "switch", "type",
        "var",
    }
)


def _struct_name(name: str) -> str:
    if name in _GO_KEYWORDS:
        return "_" + name
    words = []
    for word in name.split("_"):
        upper = word.upper()
        if upper in _ACRONYMS:
            words.append(upper)
        else:
            words.append(word[:1].upper() + word[1:])
    return "".join(words)


# Silence linters about the unused stdlib import on some tooling setups.
del keyword


@dataclass(eq=False)
class Field:
    """A schema field. ``type`` is the Go-style type name, e.g. ``time.Time``."""

    name: str
    type: str = "string"
    pkg_path: str = ""
    enum: bool = False
    enums: Tuple[str, ...] = ()
    nillable: bool = False
    optional: bool = False
    sensitive: bool = False
    comment: str = ""
    annotations: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        self.enums = tuple(self.enums)

    def struct_field(self) -> str:
        """Name of the generated struct field."""
        return _struct_name(self.name)

    def is_enum(self) -> bool:
        """Whether the field is an enum."""
        return self.enum or bool(self.enums)


@dataclass(eq=False)
class Edge:
    """A relation from one node to another."""

    name: str
    type: "Node" = field(repr=False)
    unique: bool = False
    inverse: str = ""
    ref: Optional["Edge"] = field(default=None, repr=False)
    annotations: Dict[str, Any] = field(default_factory=dict)

    def struct_field(self) -> str:
        """Name of the generated struct field."""
        return _struct_name(self.name)

    def is_inverse(self) -> bool:
        """Whether the edge is the back-reference of another edge."""
        return bool(self.inverse)


@dataclass(eq=False)
class Node:
    """An entity type with its ID, fields and edges."""

    name: str
    id: Optional[Field] = None
    fields: List[Field] = field(default_factory=list)
    edges: List[Edge] = field(default_factory=list, repr=False)


@dataclass(eq=False)
class Graph:
    """The set of nodes generated together."""

    package: str
    nodes: List[Node] = field(default_factory=list)