from datetime import datetime
from pydantic import BaseModel


class ReminderSchedule(BaseModel):
    booking_id: str
    scheduled_at: datetime
