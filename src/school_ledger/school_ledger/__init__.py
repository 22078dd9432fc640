"""School Ledger package.

Attendance locking and monthly fee-ledger generation for a multi-tenant
school system, organized by feature modules (attendance, fees, timetable, ...)
with a thin Flask controller layer over service/repository layers.
"""
