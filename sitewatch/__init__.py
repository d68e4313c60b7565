"""Sitewatch - website audits, schedules and continuous monitoring"""

__version__ = "0.1.0"
