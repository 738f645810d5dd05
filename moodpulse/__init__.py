"""
MoodPulse - employee wellbeing check-ins over chat.

Turns chat replies into mood signals, detects trends and burnout risk,
and fans check-in requests out to employees.
"""

__version__ = "1.0.0"
