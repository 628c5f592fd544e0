from dataclasses import dataclass, field
from datetime import datetime


@dataclass(frozen=True)
class TemporaryCredentials:
    """Short-lived credentials for one invocation. Never persisted."""

    access_key_id: str
    secret_access_key: str = field(repr=False)
    session_token: str = field(repr=False)
    expiration: datetime | None = None
    assumed_role_arn: str | None = None

    def as_boto_kwargs(self) -> dict[str, str]:
        """Keyword arguments accepted by boto3 sessions and clients."""
        return {
            "aws_access_key_id": self.access_key_id,
            "aws_secret_access_key": self.secret_access_key,
            "aws_session_token": self.session_token,
        }
