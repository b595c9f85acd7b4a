"""Audit logging and reports."""
