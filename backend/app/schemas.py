"""
Pydantic schemas for request and response validation.
"""

from typing import Any

from pydantic import BaseModel, Field


class AssignTeamRequest(BaseModel):
    team_id: str = Field(min_length=1)


class UpdateIssueStateRequest(BaseModel):
    state_id: str = Field(min_length=1)
    team_id: str | None = None


class AddCommentRequest(BaseModel):
    body: str = Field(min_length=1, max_length=65536)
    team_id: str | None = None


class EnvelopeResponse(BaseModel):
    success: bool
    data: Any | None = None
    error: str | None = None
    error_code: str | None = None


class HealthResponse(BaseModel):
    status: str
