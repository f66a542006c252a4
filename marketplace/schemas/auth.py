from pydantic import BaseModel
from typing import Optional

# --- Auth (auth.users.id -> profiles.id) ---
class SignUpRequest(BaseModel):
    email: str
    password: str
    confirm_password: str
    first_name: str
    last_name: str
    study_cycle: Optional[str] = None
    school_year: Optional[str] = None

class LoginRequest(BaseModel):
    email: str
    password: str

class LogoutRequest(BaseModel):
    refresh_token: str
