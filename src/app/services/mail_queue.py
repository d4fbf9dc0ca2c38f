from abc import ABC, abstractmethod

from pydantic import BaseModel

SEND_VERIFICATION_EMAIL = "sendVerificationEmail"
SEND_RESET_OTP_EMAIL = "sendResetOtpEmail"


class SendVerificationEmailJob(BaseModel):
    """Payload of the verification mail; verify_url carries the raw token"""

    to_email: str
    verify_url: str


class SendResetOtpEmailJob(BaseModel):
    """Payload of the password reset mail; otp is the raw code"""

    to_email: str
    otp: str
    app_name: str


class IMailQueue(ABC):
    """
    Mail job queue interface - application layer.

    Jobs are rendered and delivered by an external worker; this side only
    enqueues. Enqueue failures propagate to the caller.
    """

    @abstractmethod
    async def enqueue_verification_email(self, job: SendVerificationEmailJob) -> None:
        pass

    @abstractmethod
    async def enqueue_reset_otp_email(self, job: SendResetOtpEmailJob) -> None:
        pass
