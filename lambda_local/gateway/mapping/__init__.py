"""
Mapping template package.

A constrained expression language embedded in text templates, used to build
handler events from requests and HTTP bodies from handler results.
"""

from .bindings import InputBinding, RequestScope, UtilBinding
from .interpreter import TemplateInterpreter, evaluate
from .jsonpath import JsonPath

__all__ = [
    "InputBinding",
    "RequestScope",
    "UtilBinding",
    "TemplateInterpreter",
    "evaluate",
    "JsonPath",
]
