"""Report dialect parsers."""

from .extent_html import ExtentHtmlParser
from .generic_html import GenericHtmlParser
from .minimal_json import MinimalJsonParser
from .rich_json import RichJsonParser
from .testng_html import TestNGHtmlParser

__all__ = [
    "ExtentHtmlParser",
    "GenericHtmlParser",
    "MinimalJsonParser",
    "RichJsonParser",
    "TestNGHtmlParser",
]
