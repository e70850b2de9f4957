from enum import Enum


class DeadlineState(Enum):
    ARMED = "ARMED"
    FIRED = "FIRED"
    DISARMED = "DISARMED"
