from ticketgate.models.base import Base
from ticketgate.models.booking import BookingRecord
from ticketgate.models.settings import SystemSettingsRecord

__all__ = ["Base", "BookingRecord", "SystemSettingsRecord"]
