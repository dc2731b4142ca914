"""
TaskFlow Focus Agent Package.

This package contains the emitter side of productivity tracking: it observes
the user's current focus (foreground window, active browser tab or a running
task timer), detects idleness, and syncs activity records to the TaskFlow API.
"""
import logging

# Applications using this package should configure their own logging.
logging.getLogger(__name__).addHandler(logging.NullHandler())

VERSION = "1.0.0"
