from pydantic import BaseModel, Field

from models.base import Identifier

# Schema for user authentication credentials
class UserLogin(BaseModel):
    username: str = Field(min_length=1)
    password: str = Field(min_length=1)

# Public view of a user, also the identity carried in the JWT
class TokenData(BaseModel):
    id: Identifier
    username: str
    role: str = "customer"

# Response for a successful login
class LoginResponse(BaseModel):
    message: str = "Login successful"
    token: str
    user: TokenData

class MeResponse(BaseModel):
    user: TokenData
