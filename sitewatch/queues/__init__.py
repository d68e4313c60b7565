"""Job queue system using Redis (BullMQ-compatible layout)"""
from sitewatch.queues.queue_manager import QueueManager, queue_manager
from sitewatch.queues.job_processor import process_job, AuditJobProcessor

__all__ = [
    "QueueManager",
    "queue_manager",
    "process_job",
    "AuditJobProcessor",
]
