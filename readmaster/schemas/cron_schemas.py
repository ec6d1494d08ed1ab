# readmaster/schemas/cron_schemas.py

from typing import Any, Dict

from pydantic import BaseModel


# cron job run summary
class CronJobResponse(BaseModel):
    success: bool = True
    message: str
    duration: int  # ms
    stats: Dict[str, Any]


# job itself failed
class CronJobFailure(BaseModel):
    success: bool = False
    error: str
    message: str
