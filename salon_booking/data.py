# salon_booking/data.py

from datetime import time

SLOT_MINUTES = 15

# statuses that no longer hold a slot
FREED_STATUSES = ("cancelled", "no-show")
EDITABLE_STATUSES = ("pending", "confirmed")
BLOCKING_VACATION_STATUSES = ("pending", "approved")

DEFAULT_CANCEL_REASON = "No reason provided"
DEFAULT_VACATION_REASON = "Time off"
DEFAULT_STAFF_TITLE = "Junior Stylist"

# Provisioning template: Monday..Friday 09:00-18:00 with lunch, weekends off
DEFAULT_WORKING_DAYS = [1, 2, 3, 4, 5]
DEFAULT_DAY_START = time(9, 0)
DEFAULT_DAY_END = time(18, 0)
DEFAULT_BREAKS = [
    {"name": "Lunch", "start": 12 * 60, "end": 13 * 60},
]
