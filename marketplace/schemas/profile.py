from pydantic import BaseModel
from typing import Optional
from datetime import datetime

# --- Profiles ---
class Profile(BaseModel):
    id: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    study_cycle: Optional[str] = None
    school_year: Optional[str] = None
    created_at: Optional[datetime] = None

class ProfileUpdate(BaseModel):
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    phone: Optional[str] = None
    study_cycle: Optional[str] = None
    school_year: Optional[str] = None
