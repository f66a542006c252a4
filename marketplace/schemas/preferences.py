from pydantic import BaseModel
from typing import List, Literal

# --- Preferences ---
class LanguageUpdate(BaseModel):
    language: Literal["fr", "en"]

class Favorites(BaseModel):
    favorites: List[str]
