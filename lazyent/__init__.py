"""Proto descriptors, validation rules and layer conversion expressions for an entity graph."""

__version__ = "0.1.0"