from pydantic import BaseModel, Field
from typing import Optional


# ---------------------------------------------------------
# CREATE SCHEMA
# ---------------------------------------------------------
class TreatmentCreate(BaseModel):
    treatment_name: str = Field(..., description="Unique among active treatments")
    category: Optional[str] = None
    beautician_fee: Optional[float] = 0
    nurse_fee: Optional[float] = 0
    consultant_fee: Optional[float] = 0

    model_config = {
        "json_schema_extra": {
            "example": {
                "treatment_name": "Botox",
                "category": "注射",
                "beautician_fee": 800,
                "nurse_fee": 1000,
                "consultant_fee": 600,
            }
        }
    }


# ---------------------------------------------------------
# UPDATE SCHEMA: every field optional, only sent fields change
# ---------------------------------------------------------
class TreatmentUpdate(BaseModel):
    treatment_name: Optional[str] = None
    category: Optional[str] = None
    beautician_fee: Optional[float] = None
    nurse_fee: Optional[float] = None
    consultant_fee: Optional[float] = None
