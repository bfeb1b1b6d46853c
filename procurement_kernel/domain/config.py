"""
ConfigStore -- typed read-only access to business configuration.

Fiscal year, supplier lists and equipment lists are owned by an external
settings screen.  The kernel reads them through this protocol only; the
SQL-backed implementation is ``procurement_kernel.services.config_service``.
"""

from __future__ import annotations

from typing import Literal, Protocol

from procurement_kernel.domain.equipment import EquipmentApplicability

SupplierKind = Literal["local", "foreign"]
FuelType = Literal["petrol", "diesel"]


class ConfigStore(Protocol):
    """Read-only business configuration."""

    def current_fiscal_year(self) -> str:
        """Active fiscal year label, e.g. ``"2081/82"``.

        Raises ConfigurationMissingError when unset.
        """
        ...

    def equipment_list(self, fuel_type: FuelType) -> EquipmentApplicability:
        """Equipment eligible for the given fuel type."""
        ...

    def supplier_list(self, kind: SupplierKind) -> tuple[str, ...]:
        """Known supplier names for local or foreign purchases."""
        ...

    def local_currency(self) -> str:
        """Currency code that needs no forex conversion."""
        ...
