from pydantic import BaseModel

# --- Conversations ---
class ConversationCreate(BaseModel):
    listing_id: str
