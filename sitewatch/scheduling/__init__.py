"""Recurrence rules for schedules and monitoring"""
