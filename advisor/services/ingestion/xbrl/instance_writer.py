"""
instance_writer.py — Facts → XBRL instance text.

Rebuilds a minimal instance (units, contexts, facts) from parsed facts so a
parsed document can be re-serialized and parsed again. Each context and unit
is written once, from the first fact that references it.
"""

from __future__ import annotations

from typing import Dict, List, Sequence

from lxml import etree

from advisor.services.ingestion.xbrl.instance_parser import Fact

XBRLI_NS = "http://www.xbrl.org/2003/instance"
XBRLDI_NS = "http://xbrl.org/2006/xbrldi"
LINK_NS = "http://www.xbrl.org/2003/linkbase"
XLINK_NS = "http://www.w3.org/1999/xlink"
ISO4217_NS = "http://www.xbrl.org/2003/iso4217"
ENTITY_SCHEME = "http://www.sec.gov/CIK"

BASE_NSMAP = {
    "xbrli": XBRLI_NS,
    "xbrldi": XBRLDI_NS,
    "link": LINK_NS,
    "xlink": XLINK_NS,
    "iso4217": ISO4217_NS,
}


def _q(namespace: str, local: str) -> str:
    return f"{{{namespace}}}{local}"


def _write_unit(root, unit_id: str, fact: Fact) -> None:
    unit_el = etree.SubElement(root, _q(XBRLI_NS, "unit"), id=unit_id)
    numerators = [u for u in fact.units if u.kind == "numerator"]
    denominators = [u for u in fact.units if u.kind == "denominator"]
    if numerators or denominators:
        divide = etree.SubElement(unit_el, _q(XBRLI_NS, "divide"))
        for tag, measures in (("unitNumerator", numerators), ("unitDenominator", denominators)):
            holder = etree.SubElement(divide, _q(XBRLI_NS, tag))
            for unit in measures:
                etree.SubElement(holder, _q(XBRLI_NS, "measure")).text = unit.value
    else:
        for unit in fact.units:
            etree.SubElement(unit_el, _q(XBRLI_NS, "measure")).text = unit.value


def _write_context(root, context_id: str, fact: Fact, entity_id: str) -> None:
    context = etree.SubElement(root, _q(XBRLI_NS, "context"), id=context_id)
    entity = etree.SubElement(context, _q(XBRLI_NS, "entity"))
    etree.SubElement(entity, _q(XBRLI_NS, "identifier"), scheme=ENTITY_SCHEME).text = entity_id
    if fact.dimensions:
        segment = etree.SubElement(entity, _q(XBRLI_NS, "segment"))
        for dim in fact.dimensions:
            etree.SubElement(segment, _q(XBRLDI_NS, "explicitMember"), dimension=dim.axis).text = dim.member
    period = etree.SubElement(context, _q(XBRLI_NS, "period"))
    for item in fact.periods:
        etree.SubElement(period, _q(XBRLI_NS, item.kind)).text = item.value


def write_instance(facts: Sequence[Fact], entity_id: str = "0000000000") -> str:
    nsmap: Dict[str, str] = dict(BASE_NSMAP)
    for fact in facts:
        if fact.prefix and fact.namespace:
            nsmap.setdefault(fact.prefix, fact.namespace)

    root = etree.Element(_q(XBRLI_NS, "xbrl"), nsmap=nsmap)
    written_units: List[str] = []
    written_contexts: List[str] = []
    for fact in facts:
        if fact.unit_ref and fact.unit_ref not in written_units:
            _write_unit(root, fact.unit_ref, fact)
            written_units.append(fact.unit_ref)
        if fact.context_ref and fact.context_ref not in written_contexts:
            _write_context(root, fact.context_ref, fact, entity_id)
            written_contexts.append(fact.context_ref)

    for fact in facts:
        element = etree.SubElement(root, _q(fact.namespace, fact.name))
        if fact.id:
            element.set("id", fact.id)
        if fact.context_ref is not None:
            element.set("contextRef", fact.context_ref)
        if fact.unit_ref is not None:
            element.set("unitRef", fact.unit_ref)
        if fact.decimals:
            element.set("decimals", fact.decimals)
        element.text = fact.value

    return etree.tostring(root, xml_declaration=True, encoding="UTF-8", pretty_print=True).decode("utf-8")
