from datetime import date
from pydantic import BaseModel, Field
from typing import List, Optional


# ---------------------------------------------------------
# CREATE SCHEMA: either a booked appointment or a walk-in customer
# ---------------------------------------------------------
class ExecutionCreate(BaseModel):
    appointment_id: Optional[int] = Field(None, description="Appointment id from the booking system")
    treatment_id: Optional[int] = None
    treatment_name: Optional[str] = None
    customer_name: Optional[str] = Field(None, description="Required when appointment_id is not given")
    appointment_date: Optional[date] = None
    appointment_time: Optional[str] = None

    model_config = {
        "json_schema_extra": {
            "example": {
                "appointment_id": 1201,
                "treatment_name": "Botox",
            }
        }
    }


class BatchLine(BaseModel):
    treatment_id: Optional[int] = None
    treatment_name: Optional[str] = None
    quantity: int = 1


class ExecutionBatchCreate(BaseModel):
    appointment_id: Optional[int] = None
    customer_name: Optional[str] = None
    appointment_date: Optional[date] = None
    items: List[BatchLine]


# ---------------------------------------------------------
# UPDATE SCHEMA: reassign employee and/or treatment
# ---------------------------------------------------------
class ExecutionReassign(BaseModel):
    employee_id: Optional[str] = None
    treatment_name: Optional[str] = None
