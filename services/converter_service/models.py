from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator
from typing import List, Optional, Dict, Any, Union
from dataclasses import dataclass, field
from enum import Enum
import json

from .errors import RequestValidationError

class ConversionStatus(str, Enum):
    STARTED = "processing"
    PROCESSED = "processed"
    ERROR = "error"

class ConversionStep(str, Enum):
    VALIDATE = "validate"
    STARTED = "started"
    FETCHING = "fetching"
    EXTRACTING = "extracting"
    ARCHIVING = "archiving"
    UPLOADING = "uploading"
    NOTIFY_DONE = "notify_done"
    FAILED = "failed"
    NOTIFY_ERROR = "notify_error"
    ACKED = "acked"
    CLEANED = "cleaned"

class ConversionRequest(BaseModel):
    """Conversion request carried in a queue message body"""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    user_id: str = Field(alias="userId", min_length=1)
    file_id: str = Field(alias="fileId", min_length=1)
    file_name: str = Field(alias="fileName", min_length=1)
    source_storage_key: str = Field(alias="fileStorageKey", min_length=1)
    frame_interval_seconds: float = Field(
        alias="screenshotsTime", gt=0, strict=True, allow_inf_nan=False
    )

    @field_validator('user_id', 'file_id', mode='before')
    @classmethod
    def coerce_identifier(cls, v):
        # Numeric ids are accepted and kept as their string form
        if isinstance(v, int) and not isinstance(v, bool):
            return str(v)
        return v

    @field_validator('user_id', 'file_id', 'file_name', 'source_storage_key')
    @classmethod
    def reject_blank(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError('must not be blank')
        return v

@dataclass(frozen=True)
class ValidRequest:
    request: ConversionRequest

@dataclass(frozen=True)
class InvalidRequest:
    error: RequestValidationError

    @property
    def reason(self) -> str:
        return self.error.message

ParsedRequest = Union[ValidRequest, InvalidRequest]

def parse_conversion_request(body: Union[str, bytes, Dict[str, Any], None]) -> ParsedRequest:
    """Parse a raw message body into a valid or invalid request"""
    if body is None:
        return InvalidRequest(RequestValidationError("message body is empty"))

    if isinstance(body, (str, bytes)):
        try:
            data = json.loads(body)
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            return InvalidRequest(
                RequestValidationError(f"message body is not valid JSON: {str(e)}")
            )
    else:
        data = body

    if not isinstance(data, dict):
        return InvalidRequest(RequestValidationError("message body is not a JSON object"))

    try:
        return ValidRequest(request=ConversionRequest.model_validate(data))
    except ValidationError as e:
        errors = e.errors()
        problems = [
            f"{'.'.join(str(part) for part in error['loc'])}: {error['msg']}"
            for error in errors
        ]
        first_field = '.'.join(str(part) for part in errors[0]['loc']) if errors else None
        return InvalidRequest(RequestValidationError(
            "; ".join(problems),
            field=first_field,
            details={'errors': problems}
        ))

@dataclass(frozen=True)
class QueueMessage:
    """Raw item delivered by the message source"""
    id: str
    receipt_token: str
    body: Optional[str]

@dataclass(frozen=True)
class ConversionMessage:
    """Queue message whose body has been parsed at the boundary"""
    id: str
    receipt_token: str
    payload: ParsedRequest

    @classmethod
    def from_queue_message(cls, message: QueueMessage) -> "ConversionMessage":
        return cls(
            id=message.id,
            receipt_token=message.receipt_token,
            payload=parse_conversion_request(message.body)
        )

    @property
    def request(self) -> Optional[ConversionRequest]:
        if isinstance(self.payload, ValidRequest):
            return self.payload.request
        return None

class StatusNotification(BaseModel):
    model_config = ConfigDict(frozen=True)

    status: ConversionStatus
    user_id: str
    file_id: str
    archive_key: Optional[str] = None

    def to_payload(self) -> Dict[str, Any]:
        """Convert to the tracking service wire format"""
        payload = {
            'status': self.status.value,
            'userId': self.user_id,
            'fileId': self.file_id,
        }
        if self.archive_key:
            payload['compressedFileKey'] = self.archive_key
        return payload

@dataclass
class ConversionOutcome:
    """Result of one pipeline invocation"""
    message_id: str
    succeeded: bool = False
    steps: List[ConversionStep] = field(default_factory=list)
    archive_key: Optional[str] = None
    error: Optional[str] = None

    @property
    def final_step(self) -> Optional[ConversionStep]:
        return self.steps[-1] if self.steps else None
