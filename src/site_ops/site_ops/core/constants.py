"""Constants and defaults.

Note: Keep constants here to avoid magic numbers spread across code.
"""

# 1.0 labor hour (공수) == 8 working hours
HOURS_PER_LABOR_UNIT = 8

DEFAULT_DAILY_RATE = 150000
DEFAULT_OVERTIME_MULTIPLIER = 1.5
DAILY_WORKER_TAX_FREE_DAILY = 150000

DEFAULT_LATE_GRACE_MINUTES = 5
DEFAULT_BREAK_MINUTES = 60
DEFAULT_HISTORY_LIMIT = 30
DEFAULT_PAGE_SIZE = 20
MAX_PAGE_SIZE = 200
DEFAULT_REPORT_DAYS = 7
