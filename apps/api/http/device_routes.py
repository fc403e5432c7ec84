"""Device admission and device administration endpoints."""

from __future__ import annotations

import logging
from typing import Any, Dict, List

from flask import Blueprint, current_app, jsonify, request

from adapters.db.firestore.models import DeviceAccount, DeviceInfo
from app_platform.errors.api import make_error


device_bp = Blueprint("devices", __name__)

logger = logging.getLogger(__name__)


def _json_body() -> Dict[str, Any]:
    body = request.get_json(silent=True)
    return body if isinstance(body, dict) else {}


def _missing(body: Dict[str, Any], fields: List[str]) -> List[str]:
    return [name for name in fields if not isinstance(body.get(name), str) or not body.get(name).strip()]


def _registry():
    return current_app.config["device_registry"]


def _gate():
    return current_app.config["admission_gate"]


@device_bp.route("/api/devices/admission", methods=["POST"])
def check_admission():
    """Would this account be admitted on this device? Never mutates."""

    body = _json_body()
    missing = _missing(body, ["deviceId", "userId"])
    if missing:
        return make_error(f"Missing required fields: {', '.join(missing)}", "MISSING_FIELDS")

    result = _gate().check_admission(body["deviceId"], body["userId"])
    logger.debug(f"Admission check for {body['userId']} on {body['deviceId']}: allowed={result.allowed}")

    return jsonify(result.to_dict()), 200


@device_bp.route("/api/devices/<device_id>/logins", methods=["POST"])
def register_login(device_id: str):
    """Check admission and record the login; 403 with the decision when denied."""

    body = _json_body()
    missing = _missing(body, ["userId"])
    if missing:
        return make_error(f"Missing required fields: {', '.join(missing)}", "MISSING_FIELDS")

    account = DeviceAccount(
        user_id=body["userId"],
        email=str(body.get("email") or ""),
        name=str(body.get("name") or ""),
        photo_url=str(body.get("photoURL") or ""),
    )
    device_info = DeviceInfo.from_dict(body["deviceInfo"]) if isinstance(body.get("deviceInfo"), dict) else None

    result, device = _gate().admit(
        device_id,
        account,
        device_info,
        strict=bool(current_app.config.get("admission_strict_writes", False)),
    )

    if not result.allowed:
        payload = result.to_dict()
        payload.update({"error": result.reason, "code": "DEVICE_LIMIT_REACHED"})
        return jsonify(payload), 403

    return jsonify({"admission": result.to_dict(), "device": device.to_json()}), 200


@device_bp.route("/api/devices", methods=["GET"])
def list_devices():
    devices = _registry().list_devices()

    return jsonify({"devices": [device.to_json() for device in devices], "count": len(devices)}), 200


@device_bp.route("/api/devices/<device_id>", methods=["GET"])
def get_device(device_id: str):
    device = _registry().get_device(device_id)
    if device is None:
        return make_error(f"Device not found: {device_id}", "NOT_FOUND")

    return jsonify(device.to_json()), 200


@device_bp.route("/api/accounts/<user_id>/devices", methods=["GET"])
def list_account_devices(user_id: str):
    """Devices an account has logged in from (full scan)."""

    devices = _registry().list_devices_for_account(user_id)

    return jsonify({"devices": [device.to_json() for device in devices], "count": len(devices)}), 200


@device_bp.route("/api/devices/<device_id>/accounts/<user_id>", methods=["DELETE"])
def remove_account(device_id: str, user_id: str):
    device = _registry().remove_account(device_id, user_id)
    logger.info(f"Removed account {user_id} from device {device_id}")

    return jsonify(device.to_json()), 200


@device_bp.route("/api/devices/<device_id>", methods=["DELETE"])
def delete_device(device_id: str):
    _registry().delete_device(device_id)
    logger.info(f"Deleted device {device_id}")

    return "", 204
