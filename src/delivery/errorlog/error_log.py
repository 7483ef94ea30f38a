"""ErrorLog aggregate — unexpected failures, kept for operators.

Callers only ever see a generic message; the detail lives here together
with the request that triggered it.
"""

import traceback
from datetime import UTC, datetime

from protean.fields import DateTime, String, Text

from delivery.domain import delivery


@delivery.aggregate
class ErrorLog:
    message = Text(required=True)
    error_type = String(max_length=255)
    stack = Text()
    url = String(max_length=2000)
    method = String(max_length=10)
    user_id = String(max_length=255)
    ip = String(max_length=64)
    created_at = DateTime(default=lambda: datetime.now(UTC))

    @classmethod
    def capture(cls, exc: BaseException, url=None, method=None, user_id=None, ip=None):
        return cls(
            message=str(exc) or type(exc).__name__,
            error_type=type(exc).__name__,
            stack="".join(traceback.format_exception(type(exc), exc, exc.__traceback__)),
            url=url,
            method=method,
            user_id=user_id,
            ip=ip,
        )
