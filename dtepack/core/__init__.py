"""Core tree models for dtepack."""

from dtepack.core.models import Diagnostic, Node, Property, Tree, Value
from dtepack.core.types import ROOT_NAME, VALUE_KINDS, TreeFormat, ValueKind

__all__ = [
    "Diagnostic",
    "Node",
    "Property",
    "Tree",
    "Value",
    "ROOT_NAME",
    "VALUE_KINDS",
    "TreeFormat",
    "ValueKind",
]
