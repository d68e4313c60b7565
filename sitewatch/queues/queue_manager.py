"""Redis-based queue manager for audit jobs (BullMQ-compatible pattern)"""
import asyncio
import json
import logging
import uuid
from typing import Any, Awaitable, Callable, Dict, List, Optional

from sitewatch.core.config import settings
from sitewatch.core.redis import redis_client
from sitewatch.queues.job_processor import process_job
from sitewatch.utils.dates import utcnow

logger = logging.getLogger(__name__)

JobHandler = Callable[[Dict[str, Any]], Awaitable[Dict[str, Any]]]


class QueueManager:
    """
    Manages the Redis-backed audit queue.

    Jobs are JSON documents pushed onto ``{queue}:pending``; their status
    lives in the hash ``{queue}:jobs:{job_id}``. A fixed number of worker
    tasks pop jobs, so at most ``concurrency`` audits run at once.
    """

    def __init__(self, queue_name: str = "audits", concurrency: Optional[int] = None,
                 handler: Optional[JobHandler] = None):
        self.queue_name = queue_name
        self.concurrency = max(1, concurrency or settings.audit_worker_concurrency)
        self.handler = handler or process_job
        self.redis_client = None
        self.worker_tasks: List[asyncio.Task] = []
        self.running = False

    @property
    def pending_key(self) -> str:
        return f"{self.queue_name}:pending"

    def job_key(self, job_id: str) -> str:
        return f"{self.queue_name}:jobs:{job_id}"

    async def connect(self):
        """Connect to Redis without starting workers"""
        if self.redis_client is None:
            self.redis_client = await redis_client.get_client()
        return self.redis_client

    async def initialize(self):
        """Connect and start the worker tasks"""
        await self.connect()
        if self.running:
            return
        self.running = True
        self.worker_tasks = [
            asyncio.create_task(self._worker_loop(index)) for index in range(self.concurrency)
        ]
        logger.info(f"Started {self.concurrency} workers for queue '{self.queue_name}'")

    async def _worker_loop(self, index: int):
        """Background worker loop to process jobs"""
        while self.running:
            try:
                result = await self.redis_client.blpop(self.pending_key, timeout=1)
                if result:
                    _, job_data_str = result
                    await self._run_job(json.loads(job_data_str))
            except asyncio.CancelledError:
                break
            except Exception as e:
                logger.error(f"Worker {index} error: {e}")
                await asyncio.sleep(1)

    async def _run_job(self, job_data: Dict[str, Any]) -> None:
        job_id = job_data.get("job_id")
        if job_id:
            await self.redis_client.hset(
                self.job_key(job_id),
                mapping={"status": "active", "started_at": utcnow().isoformat()},
            )
        try:
            result = await self.handler(job_data)
        except Exception as e:
            logger.exception(f"Job {job_id} failed: {e}")
            if job_id:
                await self.redis_client.hset(
                    self.job_key(job_id),
                    mapping={
                        "status": "failed",
                        "error": str(e),
                        "failed_at": utcnow().isoformat(),
                    },
                )
            return

        if job_id:
            await self.redis_client.hset(
                self.job_key(job_id),
                mapping={
                    "status": "completed",
                    "result": json.dumps(result, default=str),
                    "completed_at": utcnow().isoformat(),
                },
            )

    async def enqueue_audit(self, audit_id: str) -> str:
        """
        Add an audit job to the queue.

        Returns:
            job_id: The job ID
        """
        await self.connect()

        job_id = str(uuid.uuid4())
        job_data = {
            "job_id": job_id,
            "audit_id": str(audit_id),
            "created_at": utcnow().isoformat(),
        }

        await self.redis_client.hset(
            self.job_key(job_id),
            mapping={
                "status": "pending",
                "data": json.dumps(job_data),
                "created_at": job_data["created_at"],
            },
        )
        await self.redis_client.rpush(self.pending_key, json.dumps(job_data))
        logger.info(f"Enqueued audit {audit_id} as job {job_id}")
        return job_id

    async def get_job_status(self, job_id: str) -> Dict[str, Any]:
        """Get status of a job"""
        await self.connect()

        job_data = await self.redis_client.hgetall(self.job_key(job_id))
        if not job_data:
            return {"id": job_id, "status": "not_found"}

        result = {
            "id": job_id,
            "status": job_data.get("status", "unknown"),
        }
        if "data" in job_data:
            result["data"] = json.loads(job_data["data"])
        if "result" in job_data:
            result["returnvalue"] = json.loads(job_data["result"])
        if "error" in job_data:
            result["failedReason"] = job_data["error"]
        return result

    async def queue_depth(self) -> int:
        """Number of jobs waiting to be picked up"""
        await self.connect()
        return await self.redis_client.llen(self.pending_key)

    async def close(self):
        """Stop workers"""
        self.running = False
        for task in self.worker_tasks:
            task.cancel()
        for task in self.worker_tasks:
            try:
                await task
            except asyncio.CancelledError:
                pass
        self.worker_tasks = []


# Global queue manager instance
queue_manager = QueueManager()
