"""Tests for the device ledger models."""

from datetime import datetime, timezone

import pytest

from adapters.db.firestore.models import (
    Device,
    DeviceAccount,
    DeviceInfo,
    StoredDocument,
    validate_device_id,
    validate_user_id,
)


@pytest.mark.unit
class TestDeviceAccount:
    def test_requires_user_id(self):
        with pytest.raises(ValueError):
            DeviceAccount(user_id="")

    def test_wire_names(self):
        when = datetime(2025, 3, 1, 12, 0, tzinfo=timezone.utc)
        account = DeviceAccount(user_id="u1", email="a@example.com", name="Ada", photo_url="http://x/p.png", last_login_at=when)

        assert account.to_dict() == {
            "userId": "u1",
            "email": "a@example.com",
            "name": "Ada",
            "photoURL": "http://x/p.png",
            "firstLoginAt": None,
            "lastLoginAt": when,
        }
        assert account.to_json()["lastLoginAt"] == "2025-03-01T12:00:00Z"

    def test_from_dict_parses_timestamps(self):
        account = DeviceAccount.from_dict({"userId": "u1", "firstLoginAt": "2025-03-01T12:00:00Z", "lastLoginAt": 1740830400000})

        assert account.first_login_at == datetime(2025, 3, 1, 12, 0, tzinfo=timezone.utc)
        assert account.last_login_at == datetime(2025, 3, 1, 12, 0, tzinfo=timezone.utc)


@pytest.mark.unit
class TestDevice:
    def test_consistent_ledger(self):
        device = Device(
            device_id="d1",
            account_ids=["u1", "u2"],
            account_count=2,
            accounts=[DeviceAccount(user_id="u1"), DeviceAccount(user_id="u2")],
        )

        assert device.is_consistent()
        assert device.has_account("u2")
        assert device.find_account("u2").user_id == "u2"
        assert device.find_account("u3") is None

    @pytest.mark.parametrize(
        "ids, count, accounts",
        [
            (["u1", "u2"], 1, ["u1", "u2"]),
            (["u1", "u2"], 2, ["u1"]),
            (["u1", "u1"], 2, ["u1", "u1"]),
            (["u1", "u2"], 2, ["u1", "u3"]),
        ],
    )
    def test_inconsistent_ledgers(self, ids, count, accounts):
        device = Device(
            device_id="d1",
            account_ids=ids,
            account_count=count,
            accounts=[DeviceAccount(user_id=uid) for uid in accounts],
        )

        assert not device.is_consistent()

    def test_from_dict_tolerates_malformed_ledger(self):
        device = Device.from_dict(
            {"accountIds": "u1", "accountCount": "three", "accounts": [{"email": "x"}, "junk", {"userId": "u9"}]},
            device_id="d1",
        )

        assert device.account_ids == []
        assert device.account_count == 0
        assert [account.user_id for account in device.accounts] == ["u9"]
        assert device.device_info == DeviceInfo()

    def test_to_json_round_trip_keeps_ledger(self):
        when = datetime(2025, 3, 1, tzinfo=timezone.utc)
        device = Device(
            device_id="d1",
            account_ids=["u1"],
            account_count=1,
            accounts=[DeviceAccount(user_id="u1", last_login_at=when)],
            device_info=DeviceInfo(model="iPhone 15", os="iOS 18", app_version="2.3.0"),
            last_login_at=when,
        )

        payload = device.to_json()
        restored = Device.from_dict(payload)

        assert payload["id"] == "d1"
        assert payload["deviceInfo"] == {"model": "iPhone 15", "os": "iOS 18", "appVersion": "2.3.0"}
        assert restored.ledger_fields() == device.ledger_fields()
        assert restored.last_login_at == when


@pytest.mark.unit
class TestValidators:
    @pytest.mark.parametrize("value, expected", [("abc-123", True), ("", False), ("   ", False), (None, False), (42, False), ("a/b", False), ("x" * 201, False)])
    def test_validate_ids(self, value, expected):
        assert validate_device_id(value) is expected
        assert validate_user_id(value) is expected


@pytest.mark.unit
def test_stored_document_get():
    doc = StoredDocument(id="p1", data={"likesCount": 3})

    assert doc.get("likesCount") == 3
    assert doc.get("savesCount", 0) == 0
