"""Pydantic schemas for request/response validation."""
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from access_control.models.enums import AccessStatus, AccessType


# Verification schemas
class VerifyAccessRequest(BaseModel):
    card_uid: str = Field(..., min_length=1)
    door_id: int


class EmployeeSummary(BaseModel):
    name: str
    role: str


class VerifyAccessResponse(BaseModel):
    status: AccessStatus
    message: str
    timestamp: str
    employee: Optional[EmployeeSummary] = None


# Access log schemas
class AccessLogResponse(BaseModel):
    id: int
    card_uid: str
    door_id: int
    status: AccessStatus
    denial_reason: Optional[str]
    timestamp: datetime

    model_config = ConfigDict(from_attributes=True)


class Pagination(BaseModel):
    page: int
    limit: int
    total: int
    total_pages: int


class AccessLogPage(BaseModel):
    data: List[AccessLogResponse]
    pagination: Pagination


class AccessStatsResponse(BaseModel):
    total: int
    granted: int
    denied: int


# Permission schemas
class PermissionGrant(BaseModel):
    role_id: int
    door_group_id: int
    access_type: AccessType
    start_time: Optional[str] = None
    end_time: Optional[str] = None


class PermissionResponse(BaseModel):
    id: int
    role_id: int
    door_group_id: int
    access_type: AccessType
    start_time: Optional[str]
    end_time: Optional[str]
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


# Error response
class ErrorResponse(BaseModel):
    detail: str
