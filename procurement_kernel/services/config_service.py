"""
procurement_kernel.services.config_service -- ConfigStore over ``app_config``.

Values are stored as text.  List values may be JSON arrays or
comma-separated strings; both are accepted.  Lookups go by config_name,
optionally narrowed by config_type.

Keys read:
    current_fy                          fiscal year label
    supplier_list_local / _foreign      supplier names
    valid_equipment_list_petrol / _diesel (config_type "fuel")
    local_currency                      overrides the settings default
"""

from __future__ import annotations

import json

from sqlalchemy import select
from sqlalchemy.orm import Session

from procurement_kernel.domain.config import FuelType, SupplierKind
from procurement_kernel.domain.equipment import EquipmentApplicability
from procurement_kernel.exceptions import ConfigurationMissingError
from procurement_kernel.models.notification import AppConfigModel
from procurement_kernel.selectors.base import BaseSelector

CURRENT_FISCAL_YEAR = "current_fy"
LOCAL_CURRENCY = "local_currency"
FUEL_CONFIG_TYPE = "fuel"


def _split_list(raw: str) -> list[str]:
    text = raw.strip()
    if text.startswith("["):
        try:
            values = json.loads(text)
        except json.JSONDecodeError:
            values = None
        if isinstance(values, list):
            return [str(v).strip() for v in values if str(v).strip()]
    return [part.strip() for part in text.split(",") if part.strip()]


class AppConfigStore(BaseSelector):
    """Read-only ConfigStore backed by the app_config table."""

    def __init__(self, session: Session, default_local_currency: str = "NPR"):
        super().__init__(session)
        self._default_local_currency = default_local_currency.upper()

    def value(self, config_name: str, config_type: str | None = None) -> str | None:
        stmt = select(AppConfigModel.config_value).where(
            AppConfigModel.config_name == config_name
        )
        if config_type is not None:
            stmt = stmt.where(AppConfigModel.config_type == config_type)
        return self.session.execute(stmt.limit(1)).scalar_one_or_none()

    def current_fiscal_year(self) -> str:
        raw = self.value(CURRENT_FISCAL_YEAR)
        if raw is None or not raw.strip():
            raise ConfigurationMissingError(CURRENT_FISCAL_YEAR)
        return raw.strip()

    def supplier_list(self, kind: SupplierKind) -> tuple[str, ...]:
        raw = self.value(f"supplier_list_{kind}")
        return tuple(_split_list(raw)) if raw else ()

    def equipment_list(self, fuel_type: FuelType) -> EquipmentApplicability:
        raw = self.value(f"valid_equipment_list_{fuel_type}", FUEL_CONFIG_TYPE)
        return EquipmentApplicability.parse(_split_list(raw) if raw else None)

    def local_currency(self) -> str:
        raw = self.value(LOCAL_CURRENCY)
        return raw.strip().upper() if raw and raw.strip() else self._default_local_currency
