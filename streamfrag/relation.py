"""Relations: comparison-labelled edges from the root bucket to a bucket.

A relation asserts that every member reachable through it has a value at
`path` that compares to `value` as described by `type`. The root bucket holds
one relation per window boundary side, so reading the root's relations
together partitions the timestamp axis into half-open intervals:

    >= 2022-08-07T08:08:21.000Z  -> bucket "1659859701000"
    <  2022-08-07T09:00:00.000Z  -> bucket "1659859701000"
    >= 2022-08-07T09:00:00.000Z  -> bucket "1659862800000"

Only `GTE` and `LT` are produced by the fragmenter; the remaining kinds belong
to the wider TREE relation vocabulary and are accepted when reading.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field

from streamfrag.instant import to_iso

TREE_NS = "https://w3id.org/tree#"


class RelationType(str, Enum):
    """Comparison kind of a relation."""

    GT = "GT"
    GTE = "GTE"
    LT = "LT"
    LTE = "LTE"
    EQ = "EQ"

    @property
    def iri(self) -> str:
        """The TREE vocabulary IRI for this comparison kind."""
        return TREE_NS + _TREE_NAMES[self]


_TREE_NAMES = {
    RelationType.GT: "GreaterThanRelation",
    RelationType.GTE: "GreaterThanOrEqualToRelation",
    RelationType.LT: "LessThanRelation",
    RelationType.LTE: "LessThanOrEqualToRelation",
    RelationType.EQ: "EqualToRelation",
}


class Relation(BaseModel):
    """A directed edge from a bucket (in practice the root) to `bucket`.

    Relations are created by bootstrap (one `GTE`) and by splits (one
    `GTE`/`LT` pair at the same boundary); they are never mutated or removed.
    """

    model_config = {"frozen": True}

    type: RelationType
    path: str = Field(min_length=1, description="Timestamp path the comparison applies to.")
    value: str = Field(description="ISO-8601 instant string.")
    bucket: str = Field(description="Destination bucket identifier.")

    @classmethod
    def at(cls, type: RelationType, path: str, instant: datetime, bucket: str) -> Relation:
        """Build a relation whose value is `instant` rendered as ISO-8601 UTC."""
        return cls(type=type, path=path, value=to_iso(instant), bucket=bucket)
