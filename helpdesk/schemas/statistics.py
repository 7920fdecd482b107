from __future__ import annotations

from pydantic import BaseModel, Field


class TicketStat(BaseModel):
    status: str
    priority: str
    type: str
    count: int


class ResponseTimes(BaseModel):
    avg_first_response: str
    avg_resolution_time: str
    tickets_resolved: int


class TechnicianStat(BaseModel):
    technician_id: int
    technician_name: str
    tickets_assigned: int
    tickets_resolved: int
    avg_resolution_time: str


class ComputerStats(BaseModel):
    total_computers: int
    active_computers: int
    in_maintenance: int
    retired_computers: int
    unassigned_computers: int
    computers_by_type: dict[str, int] = Field(default_factory=dict)
    computers_by_department: dict[str, int] = Field(default_factory=dict)


class BacklogStat(BaseModel):
    age_range: str
    ticket_count: int
    priority_breakdown: dict[str, int] = Field(default_factory=dict)
    type_breakdown: dict[str, int] = Field(default_factory=dict)


class StatisticsReport(BaseModel):
    start_date: str
    end_date: str
    backlog_cutoff_days: int
    ticket_stats: list[TicketStat] = Field(default_factory=list)
    response_times: ResponseTimes
    technician_stats: list[TechnicianStat] = Field(default_factory=list)
    computer_stats: ComputerStats
    backlog_stats: list[BacklogStat] = Field(default_factory=list)
