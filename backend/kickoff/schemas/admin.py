from typing import List

from pydantic import BaseModel

from .reservation import ReservationSummary


class AnalyticsSummary(BaseModel):
    total_users: int
    total_reservations: int
    total_earnings: float
    pending_requests: int
    recent_reservations: List[ReservationSummary]
