from __future__ import annotations

from dataclasses import dataclass, field

from pydantic import BaseModel, Field


@dataclass(frozen=True)
class ReportFile:
    filename: str
    content: bytes


@dataclass(frozen=True)
class ReportRequest:
    """One report submission, as parsed from the multipart form.

    Lives only for the duration of the request; nothing here is persisted.
    """

    report_type: str = ""
    denial_text: str = ""
    files: tuple[ReportFile, ...] = field(default_factory=tuple)


class ReportOut(BaseModel):
    """Generated report returned to the caller."""

    report: str = Field(
        description="Clinical report text generated by the language model (whitespace-trimmed).",
        examples=["Patient presented with persistent lower back pain ..."],
    )
