"""
markdown_renderer.py — Facts → Markdown for chunking and embedding.

Layout:
    # {title}                       (optional)
    ## Data Tables                  concepts reported more than once with the
    ### us-gaap:Revenues            same axes, one table each
    | Period | srt:ProductOrServiceAxis | Value |
    ## Facts                        every other fact, one line each
    - dei:EntityCommonStockSharesOutstanding: 15,550,061,000 shares (as of 2023-10-20)

Groups, rows and lines follow first appearance in the input, so identical
facts always render byte-identical output.
"""

from __future__ import annotations

from typing import Dict, List, Optional, Sequence, Tuple

from advisor.services.ingestion.xbrl.instance_parser import Fact
from advisor.services.ingestion.xbrl.value_formatter import format_value

GroupKey = Tuple[str, Tuple[str, ...]]


def period_label(fact: Fact) -> str:
    if fact.instant:
        return f"as of {fact.instant}"
    start, end = fact.start_date, fact.end_date
    if start and end:
        return f"{start} – {end}"
    return start or end or ""


def dimension_tags(fact: Fact) -> str:
    return "; ".join(f"{dim.axis}={dim.member}" for dim in fact.dimensions)


def _escape_cell(text: str) -> str:
    return text.replace("|", "\\|")


def _group_key(fact: Fact) -> GroupKey:
    return fact.qname, tuple(sorted(dim.axis for dim in fact.dimensions))


def group_facts(facts: Sequence[Fact]) -> Tuple[Dict[GroupKey, List[Fact]], List[Fact]]:
    """Split facts into multi-fact table groups and standalone facts."""
    groups: Dict[GroupKey, List[Fact]] = {}
    for fact in facts:
        groups.setdefault(_group_key(fact), []).append(fact)

    tables = {key: members for key, members in groups.items() if len(members) > 1}
    standalone = [fact for fact in facts if _group_key(fact) not in tables]
    return tables, standalone


def render_table(key: GroupKey, facts: Sequence[Fact]) -> str:
    qname, axes = key
    headers = ["Period", *axes, "Value"]
    lines = [
        f"### {qname}",
        "",
        "| " + " | ".join(_escape_cell(h) for h in headers) + " |",
        "|" + " --- |" * len(headers),
    ]
    for fact in facts:
        members = {dim.axis: dim.member for dim in fact.dimensions}
        cells = [period_label(fact) or "-"]
        cells.extend(members.get(axis, "-") for axis in axes)
        cells.append(format_value(fact.value, fact.unit_names))
        lines.append("| " + " | ".join(_escape_cell(cell) for cell in cells) + " |")
    return "\n".join(lines)


def render_fact_line(fact: Fact) -> str:
    line = f"- {fact.qname}: {format_value(fact.value, fact.unit_names)}"
    period = period_label(fact)
    if period:
        line += f" ({period})"
    tags = dimension_tags(fact)
    if tags:
        line += f" [{tags}]"
    return line


def render_markdown(facts: Sequence[Fact], title: Optional[str] = None) -> str:
    tables, standalone = group_facts(facts)
    sections: List[str] = []
    if title:
        sections.append(f"# {title}")
    if tables:
        sections.append("## Data Tables")
        sections.extend(render_table(key, members) for key, members in tables.items())
    if standalone:
        sections.append("## Facts")
        sections.append("\n".join(render_fact_line(fact) for fact in standalone))
    return "\n\n".join(sections) + "\n" if sections else ""
