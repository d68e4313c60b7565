"""Audit state machine, error codes and the system event log"""
from sitewatch.decision.error_codes import ErrorCodeDictionary
from sitewatch.decision.state_machine import AuditState, AuditStateMachine, StateMachineManager
from sitewatch.decision.event_logger import EventLogger

__all__ = [
    "ErrorCodeDictionary",
    "AuditState",
    "AuditStateMachine",
    "StateMachineManager",
    "EventLogger",
]
