"""Core domain types: manifest model, results, templates."""

from .config import ConfigError, Manifest, load_config
from .errors import ErrorCode
from .metadata import BuildMetadata
from .result import Err, Ok, Result, is_err, is_ok
from .template import TemplateContext, TemplateError, render

__all__ = [
    # config
    "ConfigError",
    "Manifest",
    "load_config",
    # errors
    "ErrorCode",
    # metadata
    "BuildMetadata",
    # result
    "Err",
    "Ok",
    "Result",
    "is_err",
    "is_ok",
    # template
    "TemplateContext",
    "TemplateError",
    "render",
]
