# tests/unit/contracts/test_breadcrumb_contracts.py
"""Tests for the Breadcrumb contract and create_breadcrumb()."""

import dataclasses

import pytest

from faultline.contracts import (
    Breadcrumb,
    BreadcrumbHint,
    BreadcrumbLevel,
    BreadcrumbType,
    SendOutcome,
    create_breadcrumb,
)


class TestBreadcrumb:
    def test_defaults(self) -> None:
        crumb = Breadcrumb()
        assert crumb.timestamp is None
        assert crumb.type is BreadcrumbType.DEFAULT
        assert crumb.level is BreadcrumbLevel.INFO

    def test_string_values_coerced_to_enums(self) -> None:
        crumb = Breadcrumb(type="request", level="error")  # type: ignore[arg-type]
        assert crumb.type is BreadcrumbType.REQUEST
        assert crumb.level is BreadcrumbLevel.ERROR

    def test_unknown_type_rejected(self) -> None:
        with pytest.raises(ValueError):
            Breadcrumb(type="telepathy")  # type: ignore[arg-type]

    def test_frozen(self) -> None:
        crumb = Breadcrumb(message="a")
        with pytest.raises(dataclasses.FrozenInstanceError):
            crumb.message = "b"  # type: ignore[misc]

    def test_to_dict_omits_unset_fields(self) -> None:
        assert Breadcrumb(timestamp=1.0).to_dict() == {"timestamp": 1.0, "type": "default", "level": "info"}

    def test_to_dict_full(self) -> None:
        crumb = Breadcrumb(
            timestamp=1.0,
            type=BreadcrumbType.UI,
            level=BreadcrumbLevel.WARNING,
            category="ui.click",
            message="Click on Button#save",
            data={"selector": "Button#save"},
        )
        assert crumb.to_dict() == {
            "timestamp": 1.0,
            "type": "ui",
            "level": "warning",
            "category": "ui.click",
            "message": "Click on Button#save",
            "data": {"selector": "Button#save"},
        }


class TestCreateBreadcrumb:
    def test_defaults(self) -> None:
        crumb = create_breadcrumb("Cart emptied")
        assert crumb.message == "Cart emptied"
        assert crumb.type is BreadcrumbType.DEFAULT
        assert crumb.timestamp is None

    def test_explicit_fields(self) -> None:
        crumb = create_breadcrumb("Paid", type="logic", level="debug", category="checkout", data={"total": 3})
        assert crumb.type is BreadcrumbType.LOGIC
        assert crumb.level is BreadcrumbLevel.DEBUG
        assert crumb.category == "checkout"
        assert crumb.data == {"total": 3}


class TestHintAndOutcome:
    def test_hint_defaults(self) -> None:
        hint = BreadcrumbHint()
        assert hint.event is None
        assert hint.error is None
        assert hint.extra == {}

    @pytest.mark.parametrize(
        ("outcome", "accepted"),
        [(SendOutcome.SCHEDULED, True), (SendOutcome.QUEUED, True), (SendOutcome.REJECTED, False)],
    )
    def test_send_outcome_accepted(self, outcome: SendOutcome, accepted: bool) -> None:
        assert outcome.accepted is accepted
