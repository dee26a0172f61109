"""
Progress relay: serializes one job's pipeline events onto its observer.
"""
from typing import Any, Dict, Optional

import structlog

from api.services.connections import ObserverConnection
from worker.models import BoomerangResult, ProcessingProgress

logger = structlog.get_logger()


class ProgressRelay:
    """
    Forwards progress for one job and then exactly one terminal message.

    Messages after the terminal one are dropped.
    """

    def __init__(self, connection: ObserverConnection, job_id: str, file_name: str):
        self.connection = connection
        self.job_id = job_id
        self.file_name = file_name
        self.terminal_sent = False

    async def on_progress(self, progress: ProcessingProgress) -> None:
        if self.terminal_sent:
            return
        await self.connection.send({
            "type": "progress",
            "jobId": self.job_id,
            "progress": {**progress.to_client(), "fileName": self.file_name},
        })

    async def send_complete(self, result: BoomerangResult,
                            download_url: Optional[str]) -> bool:
        payload: Dict[str, Any] = {
            **result.to_client(),
            "downloadUrl": download_url,
            "fileName": self.file_name,
        }
        return await self._send_terminal({"type": "complete", "jobId": self.job_id, "result": payload})

    async def send_error(self, message: str) -> bool:
        return await self._send_terminal({
            "type": "error",
            "jobId": self.job_id,
            "error": message,
            "fileName": self.file_name,
        })

    async def _send_terminal(self, message: Dict[str, Any]) -> bool:
        if self.terminal_sent:
            logger.warning("Terminal message already sent", job_id=self.job_id)
            return False
        self.terminal_sent = True
        delivered = await self.connection.send(message)
        if not delivered:
            logger.info("Observer gone, terminal message dropped",
                        job_id=self.job_id, message_type=message["type"])
        return delivered
