"""Appointment / intake form reconciliation for the clinic front office."""

__version__ = "1.0.0"
