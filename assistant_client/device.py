"""Device identity attached to every outbound config frame."""

from dataclasses import dataclass


@dataclass(frozen=True)
class DeviceIdentity:
    device_id: str
    device_model_id: str

    def __post_init__(self):
        if not self.device_id or not self.device_model_id:
            raise ValueError("device_id and device_model_id are required")
