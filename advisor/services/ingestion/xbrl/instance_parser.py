"""
instance_parser.py — XBRL Instance Document → Facts

Purpose:
- Parse an XBRL 2.1 instance (including the `_htm.xml` instances the archive
  extracts from inline filings) into a flat list of `Fact` values.
- Join each fact to its units (via `unitRef`) and to its period and
  dimensions (via `contextRef`). Facts carry copies, never references back
  into the context or unit tables.

This module does NOT:
- Resolve taxonomies, linkbases or calculation relationships.
- Format values (see `value_formatter.py`).
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Dict, Iterator, List, Optional, Tuple

from bs4 import BeautifulSoup
from lxml import etree

from advisor.core.logging import get_logger
from advisor.services.ingestion.errors import SkippedDimension, XmlError

logger = get_logger(__name__)

RESERVED_ELEMENTS = frozenset({"context", "unit", "xbrl", "schemaRef"})
PERIOD_KINDS = ("instant", "startDate", "endDate")
MEASURE_KINDS = {
    "unit": "measure",
    "unitNumerator": "numerator",
    "unitDenominator": "denominator",
}

_WHITESPACE = re.compile(r"\s+")
_XML_DECLARATION = re.compile(r"^\s*<\?xml[^>]*\?>")
_NON_ASCII = re.compile(r"[^\x00-\x7f]")


# ---------------------------------------------------------------------------
# Instance model
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Unit:
    """One measure of a unit: `kind` is measure, numerator or denominator."""
    kind: str
    value: str

    def __str__(self) -> str:
        return f"{self.kind} -- {self.value}"


@dataclass(frozen=True)
class Period:
    """`kind` is instant, startDate or endDate."""
    kind: str
    value: str


@dataclass(frozen=True)
class Dimension:
    axis_ns: str
    axis_name: str
    member_ns: str
    member_name: str

    @property
    def axis(self) -> str:
        return f"{self.axis_ns}:{self.axis_name}"

    @property
    def member(self) -> str:
        return f"{self.member_ns}:{self.member_name}"


@dataclass
class Fact:
    id: str
    prefix: str
    namespace: str
    name: str
    value: str
    decimals: str = ""
    context_ref: Optional[str] = None
    unit_ref: Optional[str] = None
    units: List[Unit] = field(default_factory=list)
    periods: List[Period] = field(default_factory=list)
    dimensions: List[Dimension] = field(default_factory=list)

    @property
    def qname(self) -> str:
        return f"{self.prefix}:{self.name}" if self.prefix else self.name

    @property
    def unit_names(self) -> List[str]:
        """Measure local names, e.g. `iso4217:USD` -> `USD`."""
        return [unit.value.rpartition(":")[2] for unit in self.units]

    def _period_value(self, kind: str) -> Optional[str]:
        for period in self.periods:
            if period.kind == kind:
                return period.value
        return None

    @property
    def instant(self) -> Optional[str]:
        return self._period_value("instant")

    @property
    def start_date(self) -> Optional[str]:
        return self._period_value("startDate")

    @property
    def end_date(self) -> Optional[str]:
        return self._period_value("endDate")


# ---------------------------------------------------------------------------
# Text helpers
# ---------------------------------------------------------------------------

def collapse_whitespace(text: str) -> str:
    return _WHITESPACE.sub(" ", text)


def sanitize_html(text: str) -> str:
    """
    Plain-text rendering of a fact value: non-ASCII becomes a space, HTML-like
    markup is reduced to its text, and whitespace runs collapse.
    """
    output = _NON_ASCII.sub(" ", text)
    if "<" in output:
        output = BeautifulSoup(output, "html.parser").get_text(" ")
    return collapse_whitespace(output).strip()


def split_qname(text: str) -> Tuple[str, str]:
    """
    Split `prefix:local`.

    Raises:
        SkippedDimension if either side is missing.
    """
    prefix, sep, local = text.strip().partition(":")
    if not sep or not prefix or not local:
        raise SkippedDimension(f"expected a prefixed name, got {text!r}")
    return prefix, local


def _local_name(element) -> str:
    return etree.QName(element).localname


def _namespace(element) -> Optional[str]:
    return etree.QName(element).namespace


# ---------------------------------------------------------------------------
# Parsing
# ---------------------------------------------------------------------------

def parse_document(text: str):
    """
    Parse instance text into an lxml root element.

    Raises:
        XmlError for malformed XML.
    """
    cleaned = _XML_DECLARATION.sub("", collapse_whitespace(text), count=1)
    if not cleaned.strip():
        raise XmlError("Malformed XBRL instance: empty document")
    parser = etree.XMLParser(ns_clean=True, huge_tree=True, resolve_entities=False, no_network=True)
    try:
        root = etree.fromstring(cleaned.encode("utf-8"), parser)
    except etree.XMLSyntaxError as exc:
        raise XmlError(f"Malformed XBRL instance: {exc}") from exc
    if root is None:
        raise XmlError("Malformed XBRL instance: empty document")
    return root


def collect_units(root) -> Dict[str, List[Unit]]:
    units: Dict[str, List[Unit]] = {}
    for unit_el in root.iter("{*}unit"):
        unit_id = unit_el.get("id", "")
        measures = units.setdefault(unit_id, [])
        for measure in unit_el.iter("{*}measure"):
            parent_name = _local_name(measure.getparent())
            kind = MEASURE_KINDS.get(parent_name, parent_name)
            measures.append(Unit(kind=kind, value=(measure.text or "").strip()))
    return units


def collect_contexts(root) -> Tuple[Dict[str, List[Period]], Dict[str, List[Dimension]]]:
    periods: Dict[str, List[Period]] = {}
    dimensions: Dict[str, List[Dimension]] = {}
    for context in root.iter("{*}context"):
        context_id = context.get("id", "")

        for period_el in context.iter("{*}period"):
            for child in period_el.iterchildren(tag=etree.Element):
                kind = _local_name(child)
                if kind in PERIOD_KINDS and child.text and child.text.strip():
                    periods.setdefault(context_id, []).append(Period(kind=kind, value=child.text.strip()))

        for member in context.iter("{*}explicitMember"):
            dimension = member.get("dimension")
            if dimension is None:
                continue
            try:
                axis_ns, axis_name = split_qname(dimension)
                member_ns, member_name = split_qname(member.text or "")
            except SkippedDimension as exc:
                logger.warning("Skipping dimension in context %s: %s", context_id, exc)
                continue
            dimensions.setdefault(context_id, []).append(
                Dimension(axis_ns=axis_ns, axis_name=axis_name, member_ns=member_ns, member_name=member_name)
            )
    return periods, dimensions


def iter_fact_elements(root) -> Iterator:
    """
    Namespaced, prefixed elements outside the reserved set, in document order.
    Reserved subtrees (contexts, units) are not descended into.
    """
    stack = [root]
    while stack:
        element = stack.pop()
        if _local_name(element) in RESERVED_ELEMENTS:
            children = [] if element is not root else list(element.iterchildren(tag=etree.Element))
        else:
            if _namespace(element) and element.prefix:
                yield element
            children = list(element.iterchildren(tag=etree.Element))
        stack.extend(reversed(children))


def parse_instance(text: str) -> List[Fact]:
    """
    Parse the decoded text of an instance document into facts.

    A fact with a missing or dangling `contextRef` is still returned, with
    empty periods and dimensions.

    Raises:
        XmlError if the document is not well-formed.
    """
    root = parse_document(text)
    units = collect_units(root)
    periods, dimensions = collect_contexts(root)

    facts: List[Fact] = []
    for element in iter_fact_elements(root):
        context_ref = element.get("contextRef")
        unit_ref = element.get("unitRef")
        facts.append(
            Fact(
                id=element.get("id", ""),
                prefix=element.prefix or "",
                namespace=_namespace(element) or "",
                name=_local_name(element),
                value=sanitize_html(element.text or ""),
                decimals=element.get("decimals", ""),
                context_ref=context_ref,
                unit_ref=unit_ref,
                units=list(units.get(unit_ref, [])) if unit_ref else [],
                periods=list(periods.get(context_ref, [])) if context_ref else [],
                dimensions=list(dimensions.get(context_ref, [])) if context_ref else [],
            )
        )
    logger.debug("Parsed %d facts (%d units, %d contexts)", len(facts), len(units), len(periods))
    return facts
