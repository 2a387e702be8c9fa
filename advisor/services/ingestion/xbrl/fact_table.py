"""
fact_table.py — Flat tabular views of parsed facts.

`facts_to_table` gives one row per fact with periods split into start/end/
instant columns and units joined as `kind -- value || ...`.
`dimensions_to_table` gives one row per (context, axis/member) pair, taking
each context from the first fact that references it.
"""

from __future__ import annotations

from typing import List, Optional, Sequence, Set

from pydantic import BaseModel

from advisor.services.ingestion.xbrl.instance_parser import Fact


class FactTableRow(BaseModel):
    context_ref: Optional[str] = None
    tag: str
    prefix: str
    value: str
    period_start: Optional[str] = None
    period_end: Optional[str] = None
    point_in_time: Optional[str] = None
    unit: Optional[str] = None
    num_dim: int = 0


class DimensionTableRow(BaseModel):
    context_ref: str
    axis_prefix: str
    axis_tag: str
    member_prefix: str
    member_tag: str


def facts_to_table(facts: Sequence[Fact]) -> List[FactTableRow]:
    rows: List[FactTableRow] = []
    for fact in facts:
        rows.append(
            FactTableRow(
                context_ref=fact.context_ref,
                tag=fact.name,
                prefix=fact.prefix,
                value=fact.value,
                period_start=fact.start_date,
                period_end=fact.end_date,
                point_in_time=fact.instant,
                unit=" || ".join(str(unit) for unit in fact.units) or None,
                num_dim=len(fact.dimensions),
            )
        )
    return rows


def dimensions_to_table(facts: Sequence[Fact]) -> List[DimensionTableRow]:
    rows: List[DimensionTableRow] = []
    seen: Set[str] = set()
    for fact in facts:
        if not fact.context_ref or fact.context_ref in seen or not fact.dimensions:
            continue
        seen.add(fact.context_ref)
        for dim in fact.dimensions:
            rows.append(
                DimensionTableRow(
                    context_ref=fact.context_ref,
                    axis_prefix=dim.axis_ns,
                    axis_tag=dim.axis_name,
                    member_prefix=dim.member_ns,
                    member_tag=dim.member_name,
                )
            )
    return rows
