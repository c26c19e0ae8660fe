from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional, Union


class ErrorKind(str, Enum):
    NETWORK = "network"
    TIMEOUT = "timeout"
    HTTP = "http"
    UNAUTHORIZED = "unauthorized"
    INVALID_RESPONSE = "invalid_response"


@dataclass(frozen=True)
class Ok:
    value: Any = None
    ok: bool = field(default=True, init=False)


@dataclass(frozen=True)
class Err:
    error: ErrorKind
    message: str = ""
    status: Optional[int] = None
    ok: bool = field(default=False, init=False)

    def to_dict(self) -> dict:
        return {"error": self.error.value, "message": self.message, "status": self.status}


ApiResult = Union[Ok, Err]
