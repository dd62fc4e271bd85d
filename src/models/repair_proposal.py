# src/models/repair_proposal.py

"""Replacement selector offered by the AI repair collaborator."""

from dataclasses import dataclass
from decimal import Decimal


@dataclass(frozen=True)
class RepairProposal:
    """A candidate selector plus the text it currently resolves to."""

    selector: str
    sample_text: str
    value_type: str | None = None
    value_numeric: Decimal | None = None
    name: str | None = None
