"""
shiftmigrate - migrate volunteer shift history out of a legacy admin panel.

Logs into the panel, scrapes users, events and signups, maps them onto the
target application's users, shift types, shifts and signups, and imports
them idempotently with a full report.
"""

__version__ = "0.1.0"
