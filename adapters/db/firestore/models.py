"""Domain models for Firestore entities."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional


def _parse_timestamp(value: Any) -> Optional[datetime]:
    """Accept Firestore timestamps (datetime subclasses), ISO strings and epoch millis."""

    if value is None:
        return None
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    if isinstance(value, str):
        try:
            parsed = datetime.fromisoformat(value.replace('Z', '+00:00'))
        except ValueError:
            return None
        return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return datetime.fromtimestamp(value / 1000.0, tz=timezone.utc)

    return None


def _iso(value: Optional[datetime]) -> Optional[str]:
    if value is None:
        return None

    return value.isoformat().replace('+00:00', 'Z')


@dataclass
class StoredDocument:
    """A document read from the store: id, field data and the server update time."""

    id: str
    data: Dict[str, Any] = field(default_factory=dict)
    update_time: Any = None

    def get(self, key: str, default: Any = None) -> Any:
        return self.data.get(key, default)


@dataclass
class DeviceInfo:
    """Device metadata reported by the app; opaque to the admission core."""

    model: str = ""
    os: str = ""
    app_version: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {'model': self.model, 'os': self.os, 'appVersion': self.app_version}

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "DeviceInfo":
        data = data or {}

        return cls(
            model=str(data.get('model') or ""),
            os=str(data.get('os') or ""),
            app_version=str(data.get('appVersion') or ""),
        )


@dataclass
class DeviceAccount:
    """Account record embedded in a device document."""

    user_id: str
    email: str = ""
    name: str = ""
    photo_url: str = ""
    first_login_at: Optional[datetime] = None
    last_login_at: Optional[datetime] = None

    def __post_init__(self):
        """Validate required fields after initialization."""

        if not self.user_id or not isinstance(self.user_id, str):
            raise ValueError("user_id is required")

    def to_dict(self) -> Dict[str, Any]:
        return {
            'userId': self.user_id,
            'email': self.email,
            'name': self.name,
            'photoURL': self.photo_url,
            'firstLoginAt': self.first_login_at,
            'lastLoginAt': self.last_login_at,
        }

    def to_json(self) -> Dict[str, Any]:
        payload = self.to_dict()
        payload['firstLoginAt'] = _iso(self.first_login_at)
        payload['lastLoginAt'] = _iso(self.last_login_at)
        return payload

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "DeviceAccount":
        return cls(
            user_id=data.get('userId') or "",
            email=data.get('email') or "",
            name=data.get('name') or "",
            photo_url=data.get('photoURL') or "",
            first_login_at=_parse_timestamp(data.get('firstLoginAt')),
            last_login_at=_parse_timestamp(data.get('lastLoginAt')),
        )


@dataclass
class Device:
    """Per-device account ledger.

    accountIds, accountCount and accounts are three views of the same set and
    are always written together:
    account_count == len(account_ids) == len(accounts), same id set.
    """

    device_id: str
    account_ids: List[str] = field(default_factory=list)
    account_count: int = 0
    accounts: List[DeviceAccount] = field(default_factory=list)
    device_info: DeviceInfo = field(default_factory=DeviceInfo)
    first_login_at: Optional[datetime] = None
    last_login_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    update_time: Any = field(default=None, repr=False, compare=False)

    def __post_init__(self):
        if not self.device_id:
            raise ValueError("device_id is required")

    @property
    def id(self) -> str:
        return self.device_id

    def has_account(self, user_id: str) -> bool:
        return user_id in self.account_ids

    def find_account(self, user_id: str) -> Optional[DeviceAccount]:
        for account in self.accounts:
            if account.user_id == user_id:
                return account

        return None

    def is_consistent(self) -> bool:
        """Check the ledger invariant."""

        ids = set(self.account_ids)
        embedded = {account.user_id for account in self.accounts}

        return (
            self.account_count == len(self.account_ids) == len(self.accounts)
            and len(ids) == len(self.account_ids)
            and ids == embedded
        )

    def ledger_fields(self) -> Dict[str, Any]:
        """The three redundant views, for a single combined write."""

        return {
            'accountIds': list(self.account_ids),
            'accountCount': self.account_count,
            'accounts': [account.to_dict() for account in self.accounts],
        }

    def to_dict(self) -> Dict[str, Any]:
        """Convert to the Firestore document shape."""

        result = {'deviceId': self.device_id}
        result.update(self.ledger_fields())
        result.update({
            'deviceInfo': self.device_info.to_dict(),
            'firstLoginAt': self.first_login_at,
            'lastLoginAt': self.last_login_at,
            'createdAt': self.created_at,
            'updatedAt': self.updated_at,
        })
        return result

    def to_json(self) -> Dict[str, Any]:
        """JSON-safe representation (timestamps as ISO-8601 strings)."""

        payload = self.to_dict()
        payload['accounts'] = [account.to_json() for account in self.accounts]
        for key in ('firstLoginAt', 'lastLoginAt', 'createdAt', 'updatedAt'):
            payload[key] = _iso(payload[key])
        payload['id'] = self.device_id
        return payload

    @classmethod
    def from_dict(cls, data: Dict[str, Any], *, device_id: Optional[str] = None, update_time: Any = None) -> "Device":
        """Create a device from document data; tolerates missing or malformed ledger fields."""

        raw_ids = data.get('accountIds')
        raw_accounts = data.get('accounts')
        raw_count = data.get('accountCount')

        account_ids = [str(value) for value in raw_ids] if isinstance(raw_ids, list) else []
        accounts = []
        if isinstance(raw_accounts, list):
            for item in raw_accounts:
                if isinstance(item, dict) and item.get('userId'):
                    accounts.append(DeviceAccount.from_dict(item))

        if isinstance(raw_count, int) and not isinstance(raw_count, bool):
            account_count = raw_count
        else:
            account_count = len(account_ids)

        return cls(
            device_id=device_id or data.get('deviceId') or "",
            account_ids=account_ids,
            account_count=account_count,
            accounts=accounts,
            device_info=DeviceInfo.from_dict(data.get('deviceInfo')),
            first_login_at=_parse_timestamp(data.get('firstLoginAt')),
            last_login_at=_parse_timestamp(data.get('lastLoginAt')),
            created_at=_parse_timestamp(data.get('createdAt')),
            updated_at=_parse_timestamp(data.get('updatedAt')),
            update_time=update_time,
        )


def validate_device_id(device_id: Any) -> bool:
    """Validate device ID format."""

    if not device_id or not isinstance(device_id, str):
        return False

    return 0 < len(device_id.strip()) <= 200 and '/' not in device_id


def validate_user_id(user_id: Any) -> bool:
    """Validate account (user) ID format."""

    if not user_id or not isinstance(user_id, str):
        return False

    return 0 < len(user_id.strip()) <= 200 and '/' not in user_id
