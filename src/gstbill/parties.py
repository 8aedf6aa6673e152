"""Customer ("party") records."""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Iterable

from .errors import ValidationError


@dataclass(frozen=True)
class Party:
    """A buyer that invoices are raised against."""

    name: str
    gstin: str = ""
    address: str = ""
    phone: str = ""
    email: str = ""
    dl_no: str = ""
    id: int | None = None


def validate_party(party: Party) -> Party:
    name = party.name.strip()
    if not name:
        raise ValidationError("Party name is required.", code="MISSING_NAME")
    return replace(
        party,
        name=name,
        gstin=party.gstin.strip().upper(),
        address=party.address.strip(),
        phone=party.phone.strip(),
        email=party.email.strip(),
        dl_no=party.dl_no.strip(),
    )


def gstin_state_code(gstin: str | None) -> str | None:
    """Return the two-digit state code that prefixes a GSTIN.

    The GSTIN itself is otherwise treated as opaque; ``None`` is returned
    when the prefix is not two digits.
    """

    if not gstin:
        return None
    prefix = gstin.strip()[:2]
    if len(prefix) == 2 and prefix.isdigit():
        return prefix
    return None


def is_intra_state(company_gstin: str | None, party_gstin: str | None) -> bool:
    """Decide whether the CGST/SGST split applies between two GSTINs.

    When either state code is unknown the supply is treated as intra-state.
    """

    seller = gstin_state_code(company_gstin)
    buyer = gstin_state_code(party_gstin)
    if seller is None or buyer is None:
        return True
    return seller == buyer


def search_parties(
    parties: Iterable[Party], term: str = "", *, limit: int | None = None
) -> list[Party]:
    needle = term.strip().lower()
    results: list[Party] = []
    for party in parties:
        if needle and needle not in party.name.lower():
            continue
        results.append(party)
        if limit is not None and len(results) >= limit:
            break
    return results


__all__ = ["Party", "gstin_state_code", "is_intra_state", "search_parties", "validate_party"]
