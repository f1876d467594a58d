"""Statutory payroll computation engine for Indonesian payroll."""

__version__ = "0.1.0"
