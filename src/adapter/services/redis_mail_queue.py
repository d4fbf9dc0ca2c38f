import json
import logging

from redis.asyncio import Redis

from src.app.services.mail_queue import (
    SEND_RESET_OTP_EMAIL,
    SEND_VERIFICATION_EMAIL,
    IMailQueue,
    SendResetOtpEmailJob,
    SendVerificationEmailJob,
)
from src.domain.base import utcnow

logger = logging.getLogger(__name__)


class RedisMailQueue(IMailQueue):
    """Mail queue on a Redis list; one JSON document per job"""

    def __init__(self, redis_client: Redis, queue_name: str = "mail", attempts: int = 3):
        self._redis = redis_client
        self.queue_name = queue_name
        self.attempts = attempts

    async def _enqueue(self, name: str, data: dict) -> None:
        job = {
            "name": name,
            "data": data,
            "attempts": self.attempts,
            "enqueued_at": utcnow().isoformat(),
        }
        await self._redis.rpush(self.queue_name, json.dumps(job))
        # Payload holds the raw secret; only the job name is logged
        logger.info(f"Mail job {name} enqueued on '{self.queue_name}'")

    async def enqueue_verification_email(self, job: SendVerificationEmailJob) -> None:
        await self._enqueue(SEND_VERIFICATION_EMAIL, job.model_dump())

    async def enqueue_reset_otp_email(self, job: SendResetOtpEmailJob) -> None:
        await self._enqueue(SEND_RESET_OTP_EMAIL, job.model_dump())
