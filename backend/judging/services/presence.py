import threading
from typing import List, Optional

from flask import current_app

from judging import db
from judging.errors import DeviceNotFound
from judging.models import Device, JudgingSession
from judging.schemas import DeviceInfo, DeviceRegistration, validate

from . import now_ms


class DevicePresenceTracker:
    """Which devices exist and which of them currently hold a live channel.

    A device moves Unknown -> Online -> Offline -> Online ... and is never
    forgotten unless purged explicitly.
    """

    def __init__(self, lock: Optional[threading.RLock] = None, clock=now_ms):
        self._lock = lock or threading.RLock()
        self._clock = clock

    def register_device(self, device_id: str, device_name: str) -> DeviceInfo:
        """Create the device, or bring it back online under its new name."""
        registration = validate(
            DeviceRegistration, {'deviceId': device_id, 'deviceName': device_name}
        ).unwrap()
        with self._lock:
            device = db.session.get(Device, registration.device_id)
            connected_at = self._clock()
            if device is None:
                device = Device(device_id=registration.device_id)
                db.session.add(device)
            device.device_name = registration.device_name
            device.connected_at = connected_at
            device.is_online = True
            try:
                db.session.commit()
            except Exception:
                db.session.rollback()
                raise
            current_app.logger.info(f"[device-online] device={device.device_id} name={device.device_name!r}")
            return device.to_info()

    def mark_offline(self, device_id: str) -> None:
        with self._lock:
            device = db.session.get(Device, device_id)
            if device is None:
                # Disconnect raced with a purge, or the device never registered
                return
            device.is_online = False
            try:
                db.session.commit()
            except Exception:
                db.session.rollback()
                raise
            current_app.logger.info(f"[device-offline] device={device_id}")

    def is_online(self, device_id: str) -> bool:
        device = db.session.get(Device, device_id)
        return bool(device is not None and device.is_online)

    def get_device(self, device_id: str) -> DeviceInfo:
        device = db.session.get(Device, device_id)
        if device is None:
            raise DeviceNotFound(device_id, reason='was never registered')
        return device.to_info()

    def list_devices(self) -> List[DeviceInfo]:
        devices = Device.query.order_by(Device.connected_at, Device.device_id).all()
        return [d.to_info() for d in devices]

    def purge_device(self, device_id: str) -> bool:
        """Forget a device entirely. Returns False if it was unknown."""
        with self._lock:
            device = db.session.get(Device, device_id)
            if device is None:
                return False
            db.session.delete(device)
            try:
                db.session.commit()
            except Exception:
                db.session.rollback()
                raise
            current_app.logger.info(f"[device-purged] device={device_id}")
            return True

    def purge_offline(self, older_than_ms: int, keep_with_sessions: bool = True) -> int:
        """Retention hook: drop offline devices last connected before ``older_than_ms``."""
        with self._lock:
            query = Device.query.filter(Device.is_online.is_(False), Device.connected_at < older_than_ms)
            if keep_with_sessions:
                owners = db.select(JudgingSession.device_id)
                query = query.filter(~Device.device_id.in_(owners))
            stale = query.all()
            for device in stale:
                db.session.delete(device)
            try:
                db.session.commit()
            except Exception:
                db.session.rollback()
                raise
            if stale:
                current_app.logger.info(f"[device-retention] purged={len(stale)} cutoff={older_than_ms}")
            return len(stale)
