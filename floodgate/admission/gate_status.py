from dataclasses import asdict, dataclass


@dataclass(slots=True, frozen=True)
class GateStatus:
    """Point-in-time snapshot of an AdmissionGate."""

    running: int
    queued: int
    capacity: int

    @property
    def available(self):
        return self.capacity - self.running

    @property
    def saturated(self):
        return self.running >= self.capacity

    def to_dict(self) -> dict[str, int]:
        return asdict(self)
