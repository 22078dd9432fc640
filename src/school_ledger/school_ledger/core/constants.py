"""Constants and defaults.

Note: Per-school overrides for the calendar and billing values live in
``school_policies``; these are the fallbacks.
"""

SUNDAY = 0
DEFAULT_WEEKLY_OFF_DAYS = frozenset({SUNDAY})
DEFAULT_FEE_DUE_DAY = 15
DEFAULT_LEDGER_PAGE_SIZE = 24
DEFAULT_FEE_JOB_BATCH_SIZE = 100
MONEY_PLACES = 2

WEEKDAY_NAMES = ("Sunday", "Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday")
MONTH_ABBREVIATIONS = ("Jan", "Feb", "Mar", "Apr", "May", "Jun", "Jul", "Aug", "Sep", "Oct", "Nov", "Dec")
