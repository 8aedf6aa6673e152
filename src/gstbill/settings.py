"""Company profile and its read-only provider."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class CompanyProfile:
    """Seller details printed on invoices."""

    company_name: str
    address_line1: str = ""
    address_line2: str = ""
    gstin: str = ""
    dl_no1: str = ""
    dl_no2: str = ""
    phone: str = ""
    email: str = ""
    terms: str = ""


DEFAULT_PROFILE = CompanyProfile(
    company_name="Gopi Distributors",
    address_line1="123, Pharma Market, Sector 5",
    address_line2="Mumbai, Maharashtra - 400001",
    gstin="27AAAAA0000A1Z5",
    dl_no1="MH-MZ1-000001",
    dl_no2="MH-MZ1-000002",
    phone="+91 98765 43210",
    email="info@gopidistributors.com",
    terms=(
        "1. Goods once sold will not be taken back.\n"
        "2. Interest @18% p.a. will be charged if payment is not made within due date.\n"
        "3. All disputes subject to Mumbai Jurisdiction."
    ),
)


class ProfileProvider:
    """Hands out one profile snapshot until :meth:`reload` is called.

    Components receive the provider (or the snapshot) explicitly; saving a
    new profile to the store does not affect readers until a reload.
    """

    def __init__(
        self,
        loader: Callable[[], CompanyProfile | None],
        *,
        fallback: CompanyProfile = DEFAULT_PROFILE,
    ) -> None:
        self._loader = loader
        self._fallback = fallback
        self._profile: CompanyProfile | None = None

    @property
    def profile(self) -> CompanyProfile:
        if self._profile is None:
            return self.reload()
        return self._profile

    def reload(self) -> CompanyProfile:
        loaded = self._loader()
        if loaded is None:
            LOGGER.info("No company profile stored; using %s", self._fallback.company_name)
            loaded = self._fallback
        self._profile = loaded
        return loaded


__all__ = ["CompanyProfile", "DEFAULT_PROFILE", "ProfileProvider"]
