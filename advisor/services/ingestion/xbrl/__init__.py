"""
xbrl package — XBRL instance parsing and rendering for EDGAR filings.

Submodules:
    - instance_parser: instance document -> facts with units, periods, dimensions.
    - value_formatter: unit-aware numeric formatting.
    - markdown_renderer: facts -> markdown for chunking and embedding.
    - fact_table: flat fact and dimension tables.
    - instance_writer: facts -> instance document.
"""

from .fact_table import DimensionTableRow, FactTableRow, dimensions_to_table, facts_to_table  # noqa: F401
from .instance_parser import Dimension, Fact, Period, Unit, parse_instance, sanitize_html  # noqa: F401
from .instance_writer import write_instance  # noqa: F401
from .markdown_renderer import render_markdown  # noqa: F401
from .value_formatter import format_value  # noqa: F401
