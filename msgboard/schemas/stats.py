"""
schemas/stats.py
----------------
Board-wide aggregate counts.
"""

from pydantic import BaseModel


class StatsRead(BaseModel):
    total_messages: int
    total_comments: int
    total: int
