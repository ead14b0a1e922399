# models.py
from typing import List, Optional, Dict
from pydantic import BaseModel, Field


class Placeholder(BaseModel):
    id: str
    name: str
    original: str
    description: str = ""
    position: int = 0
    filled: Optional[bool] = None
    value: Optional[str] = None


class ChatTurn(BaseModel):
    role: str
    content: str


# -----------------------
# API shapes (camelCase on the wire, matching the browser client)
# -----------------------
class ParseResponse(BaseModel):
    text: str
    placeholders: List[Placeholder]
    originalBuffer: str
    detectionMethod: Optional[str] = None
    totalPlaceholders: Optional[int] = None

class GenerateRequest(BaseModel):
    originalBuffer: str
    filledValues: Dict[str, Optional[str]] = Field(default_factory=dict)
    placeholders: Optional[List[Placeholder]] = None

class GenerateResponse(BaseModel):
    document: str
    filename: str

class ChatRequest(BaseModel):
    message: str
    currentPlaceholder: Placeholder
    chatHistory: List[ChatTurn] = Field(default_factory=list)

class ChatResponse(BaseModel):
    message: str
    extractedValue: str
    needsConfirmation: bool = False
