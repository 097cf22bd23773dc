"""Pipeline steps for URL conversion."""

from .convert import ConvertStep
from .extract import ExtractStep
from .fetch import FetchStep
from .frontmatter import FrontmatterStep
from .validate import ValidateStep

__all__ = [
    "ConvertStep",
    "ExtractStep",
    "FetchStep",
    "FrontmatterStep",
    "ValidateStep",
]
