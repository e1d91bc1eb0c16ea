from sqlmodel import SQLModel
from .user import User
from .doctor import Doctor
from .slot_config import SlotConfig
from .appointment import Appointment, AppointmentStatus
from .queue_state import DoctorQueueState
from .penalty import PenalizedAccount
from .lab_test import LabTest

__all__ = [
    "SQLModel",
    "User",
    "Doctor",
    "SlotConfig",
    "Appointment",
    "AppointmentStatus",
    "DoctorQueueState",
    "PenalizedAccount",
    "LabTest",
]
