"""
Tests for input DTO validation.

Input DTOs validate on construction so a malformed submission never opens
a session.
"""

from datetime import date
from decimal import Decimal
from uuid import uuid4

import pytest

from procurement_kernel.domain.dtos import (
    CostingItem,
    CostingSubmission,
    ReceiveBatch,
    ReceiveItemInput,
    RequestEdit,
    RequestItemInput,
    RequestSubmission,
)
from procurement_kernel.exceptions import (
    InvalidQuantityError,
    InvalidRRPNumberError,
    MissingForexRateError,
    ValidationError,
)


def item(**overrides) -> RequestItemInput:
    values = dict(nac_code="GT 00000", item_name="Oil Filter", requested_quantity="5")
    values.update(overrides)
    return RequestItemInput(**values)


class TestRequestInputs:

    def test_quantity_coerced_to_decimal(self):
        assert item(requested_quantity="2.5").requested_quantity == Decimal("2.5")

    @pytest.mark.parametrize("quantity", ["0", "-1"])
    def test_non_positive_quantity(self, quantity):
        with pytest.raises(InvalidQuantityError):
            item(requested_quantity=quantity)

    def test_unparseable_quantity(self):
        with pytest.raises(ValidationError):
            item(requested_quantity="five")

    def test_missing_nac_code(self):
        with pytest.raises(ValidationError) as exc_info:
            item(nac_code="  ")
        assert exc_info.value.field == "nac_code"

    def test_oversized_equipment_range(self):
        with pytest.raises(ValidationError) as exc_info:
            item(equipment_number="101-999999999")
        assert exc_info.value.field == "equipment_number"

    def test_na_code_does_not_track_stock(self):
        assert not item(nac_code="n/a").tracks_stock
        assert item().tracks_stock

    def test_submission_needs_items(self):
        with pytest.raises(ValidationError):
            RequestSubmission("REQ-1", date(2024, 7, 1), "store.requester", ())

    def test_edit_rejects_duplicate_line_ids(self):
        line_id = uuid4()
        with pytest.raises(ValidationError):
            RequestEdit("editor", (item(line_id=line_id), item(line_id=line_id)))


class TestReceiveInputs:

    def test_duplicate_request_in_batch(self):
        request_id = uuid4()
        with pytest.raises(ValidationError):
            ReceiveBatch("store.receiver", date(2024, 7, 5), (
                ReceiveItemInput(request_id, Decimal("1")),
                ReceiveItemInput(request_id, Decimal("2")),
            ))

    def test_zero_received_quantity(self):
        with pytest.raises(InvalidQuantityError):
            ReceiveItemInput(uuid4(), Decimal("0"))


class TestCostingSubmission:

    def _submission(self, **overrides) -> CostingSubmission:
        values = dict(
            rrp_number="L001",
            supplier_name="Himal Traders",
            rrp_date=date(2024, 7, 10),
            currency="npr",
            items=(CostingItem(uuid4(), Decimal("100")),),
            created_by="costing.clerk",
        )
        values.update(overrides)
        return CostingSubmission(**values)

    def test_currency_upper_cased(self):
        assert self._submission().currency == "NPR"

    def test_invalid_number(self):
        with pytest.raises(InvalidRRPNumberError):
            self._submission(rrp_number="L1")

    def test_receive_costed_twice(self):
        receive_id = uuid4()
        with pytest.raises(ValidationError):
            self._submission(items=(
                CostingItem(receive_id, Decimal("1")),
                CostingItem(receive_id, Decimal("2")),
            ))

    def test_negative_charges_rejected(self):
        with pytest.raises(ValidationError):
            self._submission(freight_charge_total=Decimal("-1"))
        with pytest.raises(ValidationError):
            CostingItem(uuid4(), Decimal("-5"))

    def test_local_factor_is_one(self):
        assert self._submission().conversion_factor("NPR") == Decimal("1")

    def test_foreign_factor_is_forex_rate(self):
        submission = self._submission(currency="USD", forex_rate="132.5")
        assert submission.conversion_factor("NPR") == Decimal("132.5")

    def test_foreign_without_rate(self):
        with pytest.raises(MissingForexRateError):
            self._submission(currency="USD").conversion_factor("NPR")

    def test_non_positive_forex_rate(self):
        with pytest.raises(ValidationError):
            self._submission(currency="USD", forex_rate=Decimal("0"))
