from pydantic import BaseModel, Field, EmailStr

class TokenResponse(BaseModel):
    accessToken: str
    expiresIn: int
    email: str

class LoginRequest(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=1)

class GoogleLoginRequest(BaseModel):
    idToken: str = Field(..., min_length=1)

class CreateAdminRequest(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=8)
