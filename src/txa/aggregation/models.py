"""Pydantic data models for transaction events, windows and window aggregates."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

# Wire values of TxLog.message_type / TxLog.result
MO_MESSAGE_TYPE = "NIDD-MO"
MT_MESSAGE_TYPE = "NIDD-MT"
FAILED_RESULT = "FAILED"


class TxLog(BaseModel):
    """A single transaction telemetry event.

    Field names accept the camelCase wire format (``deviceId``,
    ``messageType``, ``payloadSize``) as well as their snake_case names.
    Every field is optional so that partial events still deserialize; a
    pipeline drops events it cannot route.
    """

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    device_id: str | None = Field(default=None, alias="deviceId")
    uri: str | None = None
    message_type: str | None = Field(default=None, alias="messageType")
    result: str | None = None
    payload_size: int = Field(default=0, alias="payloadSize")
    timestamp: int | None = None

    @property
    def is_mo(self) -> bool:
        return self.message_type == MO_MESSAGE_TYPE

    @property
    def is_mt(self) -> bool:
        return self.message_type == MT_MESSAGE_TYPE

    @property
    def is_failed(self) -> bool:
        return self.result == FAILED_RESULT


class Record(BaseModel):
    """A keyed entry of the ingress stream.

    ``value`` is None for a tombstone. ``timestamp`` is epoch milliseconds.
    """

    model_config = ConfigDict(frozen=True)

    key: str | None = None
    value: TxLog | None = None
    timestamp: int

    @property
    def is_tombstone(self) -> bool:
        return self.value is None


class Window(BaseModel):
    """A half-open time interval ``[start, end)`` in epoch milliseconds."""

    model_config = ConfigDict(frozen=True)

    start: int
    end: int

    @property
    def size(self) -> int:
        return self.end - self.start

    def contains(self, timestamp: int) -> bool:
        return self.start <= timestamp < self.end

    @property
    def label(self) -> str:
        return f"{format_timestamp(self.start)}->{format_timestamp(self.end)}"

    def __str__(self) -> str:
        return self.label


def format_timestamp(timestamp_ms: int) -> str:
    """Render an epoch-millisecond timestamp as HH:MM:SS (UTC)."""
    return datetime.fromtimestamp(timestamp_ms / 1000, tz=timezone.utc).strftime("%H:%M:%S")


class PayloadCount(BaseModel):
    """Running per-device counters for one window.

    Counters only ever increase while the window is open:
    ``mt_count + mo_count <= total_count``, ``error_count <= total_count``
    and ``big_count <= total_count``.
    """

    device_id: str | None = None
    total_count: int = Field(default=0, ge=0)
    mt_count: int = Field(default=0, ge=0)
    mo_count: int = Field(default=0, ge=0)
    error_count: int = Field(default=0, ge=0)
    big_count: int = Field(default=0, ge=0)

    def increase_total_count(self) -> None:
        self.total_count += 1

    def increase_mt_count(self) -> None:
        self.mt_count += 1

    def increase_mo_count(self) -> None:
        self.mo_count += 1

    def increase_error_count(self) -> None:
        self.error_count += 1

    def increase_big_count(self) -> None:
        self.big_count += 1

    def _rate(self, count: int) -> float:
        if self.total_count == 0:
            return float("nan")
        return count / self.total_count

    @property
    def mt_rate(self) -> float:
        return self._rate(self.mt_count)

    @property
    def mo_rate(self) -> float:
        return self._rate(self.mo_count)

    @property
    def error_rate(self) -> float:
        return self._rate(self.error_count)

    @property
    def big_rate(self) -> float:
        return self._rate(self.big_count)

    @classmethod
    def from_document(cls, doc: dict[str, Any]) -> PayloadCount:
        return cls.model_validate(doc)
