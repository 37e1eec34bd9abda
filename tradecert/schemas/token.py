# tradecert/schemas/token.py
from typing import Optional
from pydantic import BaseModel

from tradecert.schemas.trader import TraderOut
from tradecert.schemas.user import UserOut

class Token(BaseModel):
    access_token: str
    token_type: str = "bearer"

class AuthOut(Token):
    user: UserOut
    trader: Optional[TraderOut] = None
