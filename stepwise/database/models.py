# stepwise/database/models.py

from dataclasses import dataclass
from typing import Optional, Dict, Any, Type, TypeVar

T = TypeVar('T', bound='BaseModel')

class BaseModel:
    """Base class for row-backed models."""

    @classmethod
    def from_row(cls: Type[T], row: Optional[Dict[str, Any]]) -> Optional[T]:
        raise NotImplementedError("Subclasses must implement from_row")

    def to_db_dict(self, for_insert: bool = False) -> Dict[str, Any]:
        raise NotImplementedError("Subclasses must implement to_db_dict")


@dataclass
class QueuedJobModel(BaseModel):
    """A payload waiting in a queue. ``payload`` is the encoded JobPayload."""
    queue: str
    job_id: str
    job_class: str
    payload: str
    run_at: float
    created_at: Optional[str] = None
    id: Optional[int] = None

    @classmethod
    def from_row(cls, row: Optional[Dict[str, Any]]) -> Optional["QueuedJobModel"]:
        if not row:
            return None
        return cls(
            id=row.get("id"),
            queue=row["queue"],
            job_id=row["job_id"],
            job_class=row["job_class"],
            payload=row["payload"],
            run_at=row["run_at"],
            created_at=row.get("created_at"),
        )

    def to_db_dict(self, for_insert: bool = False) -> Dict[str, Any]:
        data = {
            "id": self.id,
            "queue": self.queue,
            "job_id": self.job_id,
            "job_class": self.job_class,
            "payload": self.payload,
            "run_at": self.run_at,
            "created_at": self.created_at,
        }
        if for_insert:
            data.pop("id")
        return data


@dataclass
class FailedJobModel(BaseModel):
    """An entry of the failure channel."""
    queue: str
    job_id: str
    job_class: str
    error_class: str
    message: str
    payload: str
    failed_at: Optional[str] = None
    id: Optional[int] = None

    @classmethod
    def from_row(cls, row: Optional[Dict[str, Any]]) -> Optional["FailedJobModel"]:
        if not row:
            return None
        return cls(
            id=row.get("id"),
            queue=row["queue"],
            job_id=row["job_id"],
            job_class=row["job_class"],
            error_class=row["error_class"],
            message=row.get("message") or "",
            payload=row["payload"],
            failed_at=row.get("failed_at"),
        )

    def to_db_dict(self, for_insert: bool = False) -> Dict[str, Any]:
        data = {
            "id": self.id,
            "queue": self.queue,
            "job_id": self.job_id,
            "job_class": self.job_class,
            "error_class": self.error_class,
            "message": self.message,
            "payload": self.payload,
            "failed_at": self.failed_at,
        }
        if for_insert:
            data.pop("id")
        return data
